# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for TutorWatch.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Utilities for loading threshold override files

Example:
    >>> from tutorwatch.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from tutorwatch.core.config.settings import (
    MonitoringSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from tutorwatch.core.config.yaml_loader import (
    YAMLLoadError,
    deep_merge,
    load_yaml,
    load_yaml_section,
)

__all__ = [
    # Settings
    "Settings",
    "MonitoringSettings",
    "get_settings",
    "clear_settings_cache",
    # YAML utilities
    "load_yaml",
    "deep_merge",
    "load_yaml_section",
    "YAMLLoadError",
]
