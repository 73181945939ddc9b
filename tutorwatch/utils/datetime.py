# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for TutorWatch.

All timestamps handled by the monitoring engine are timezone-aware UTC.
Activity records get their timestamp at ingestion, so every sliding
window comparison is done between aware datetimes and never mixes
naive and aware values.

Usage:
------
    from tutorwatch.utils.datetime import utc_now

    # For current time
    now = utc_now()

    # For dataclass defaults
    created_at: datetime = field(default_factory=utc_now)
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def window_start(reference: datetime, seconds: float) -> datetime:
    """Get the start of a trailing window ending at reference.

    Args:
        reference: End of the window (usually the newest event time).
        seconds: Window length in seconds.

    Returns:
        Timezone-aware UTC datetime marking the window start.
    """
    return ensure_utc(reference) - timedelta(seconds=seconds)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    dt_utc = ensure_utc(dt)
    return dt_utc.isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)


def coerce_datetime(value: datetime | str | None) -> datetime | None:
    """Accept either a datetime or an ISO string and return aware UTC.

    Query filters arrive from the HTTP layer as strings while in-process
    callers pass datetimes.

    Args:
        value: Datetime, ISO 8601 string, or None.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if value is None or isinstance(value, datetime):
        return ensure_utc(value)
    return parse_iso(value)


def seconds_to_human(seconds: int) -> str:
    """Convert seconds to human-readable duration.

    Args:
        seconds: Duration in seconds.

    Returns:
        Human-readable string like "2h 30m" or "45m 10s".
    """
    if seconds < 60:
        return f"{seconds}s"

    minutes = seconds // 60
    remaining_seconds = seconds % 60

    if minutes < 60:
        if remaining_seconds > 0:
            return f"{minutes}m {remaining_seconds}s"
        return f"{minutes}m"

    hours = minutes // 60
    remaining_minutes = minutes % 60

    if remaining_minutes > 0:
        return f"{hours}h {remaining_minutes}m"
    return f"{hours}h"
