# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for structured logging setup."""

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from tutorwatch.core.config.settings import Settings
from tutorwatch.utils.logging import bind_context, clear_context, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    yield
    clear_context()
    structlog.reset_defaults()
    logging.getLogger("tutorwatch").setLevel(logging.NOTSET)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_production_renders_json(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that production logs are JSON with bound context."""
        setup_logging(Settings(environment="production", debug=False, log_level="INFO"))
        bind_context(request_id="req-1")

        with caplog.at_level(logging.INFO, logger="tutorwatch"):
            get_logger("tutorwatch.test").warning(
                "security_alert_raised", reason="rapid_fire_queries"
            )

        event = json.loads(caplog.records[-1].getMessage())
        assert event["event"] == "security_alert_raised"
        assert event["reason"] == "rapid_fire_queries"
        assert event["request_id"] == "req-1"
        assert event["level"] == "warning"

    def test_level_applied_to_package_logger(self) -> None:
        """Test that the package logger follows the configured level."""
        setup_logging(Settings(environment="production", debug=False, log_level="WARNING"))

        assert logging.getLogger("tutorwatch").level == logging.WARNING

    def test_clear_context(self) -> None:
        """Test that cleared context no longer shows up."""
        bind_context(operator="admin-1")
        clear_context()

        assert structlog.contextvars.get_contextvars() == {}
