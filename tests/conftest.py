# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across the monitoring tests:
- A controllable clock so sliding windows are deterministic
- Builders for raw activities and ActivityRecords
- A ready-to-use ActivityMonitor wired to the fake clock
"""

from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any

import pytest

from tutorwatch.core.config.settings import MonitoringSettings, clear_settings_cache
from tutorwatch.core.monitoring.constants import ActivityType, Severity
from tutorwatch.core.monitoring.models import ActivityRecord, parse_details
from tutorwatch.core.monitoring.service import ActivityMonitor, reset_activity_monitor
from tutorwatch.core.monitoring.thresholds import MonitoringThresholds


class FakeClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


# =============================================================================
# Clock Fixtures
# =============================================================================


@pytest.fixture
def start_time() -> datetime:
    """Provide a weekday afternoon (outside off-hours) in UTC."""
    return datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time: datetime) -> FakeClock:
    """Provide a controllable clock starting at start_time."""
    return FakeClock(start_time)


# =============================================================================
# Activity Builders
# =============================================================================


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_session_id() -> str:
    """Provide a sample tutor session ID for testing."""
    return "sess-550e8400"


@pytest.fixture
def make_activity(
    sample_student_id: str,
    sample_session_id: str,
) -> Callable[..., dict[str, Any]]:
    """Build raw activity mappings as request handlers submit them."""

    def _make(
        activity_type: str = "learning_interaction",
        severity: str = "low",
        subject_id: str | None = None,
        session_id: str | None = None,
        details: dict[str, Any] | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        activity = {
            "subject_id": subject_id or sample_student_id,
            "session_id": session_id or sample_session_id,
            "activity_type": activity_type,
            "severity": severity,
            "details": details or {},
        }
        activity.update(extra)
        return activity

    return _make


@pytest.fixture
def make_record(
    clock: FakeClock,
    sample_student_id: str,
    sample_session_id: str,
) -> Callable[..., ActivityRecord]:
    """Build ActivityRecords directly, for component tests.

    Each record gets a fresh id; the timestamp defaults to the fake
    clock's current time.
    """
    ids = count(1)

    def _make(
        activity_type: ActivityType = ActivityType.LEARNING_INTERACTION,
        severity: Severity = Severity.LOW,
        details: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
        subject_id: str | None = None,
    ) -> ActivityRecord:
        return ActivityRecord(
            id=f"act-{next(ids)}",
            subject_id=subject_id or sample_student_id,
            session_id=sample_session_id,
            activity_type=activity_type,
            severity=severity,
            timestamp=timestamp or clock(),
            details=parse_details(activity_type, details),
        )

    return _make


# =============================================================================
# Monitor Fixtures
# =============================================================================


@pytest.fixture
def monitoring_settings() -> MonitoringSettings:
    """Provide default monitoring settings independent of the environment."""
    return MonitoringSettings(
        throttle_window_seconds=300,
        history_window_seconds=86400,
        max_history_per_subject=1000,
        retention_seconds=604800,
        cleanup_interval_seconds=300,
        lock_stripes=64,
    )


@pytest.fixture
def monitor(
    monitoring_settings: MonitoringSettings,
    clock: FakeClock,
) -> Generator[ActivityMonitor, None, None]:
    """Provide an ActivityMonitor with default thresholds and a fake clock."""
    monitor = ActivityMonitor(
        settings=monitoring_settings,
        thresholds=MonitoringThresholds(),
        clock=clock,
    )
    yield monitor
    monitor.shutdown()


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Drop cached settings and the monitor singleton around each test."""
    clear_settings_cache()
    yield
    reset_activity_monitor()
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as exercising threads"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
