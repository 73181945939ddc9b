# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for TutorWatch.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from tutorwatch.utils.datetime import (
    coerce_datetime,
    ensure_utc,
    format_iso,
    parse_iso,
    seconds_to_human,
    utc_now,
    window_start,
)
from tutorwatch.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "window_start",
    "format_iso",
    "parse_iso",
    "coerce_datetime",
    "seconds_to_human",
]
