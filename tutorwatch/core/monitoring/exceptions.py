# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised inside the activity monitoring engine.

None of these cross the ``log_activity`` boundary: the monitor turns
them into ``LogResult(logged=False, error=...)``.
"""


class ActivityMonitorError(Exception):
    """Base exception for monitoring operations."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(ActivityMonitorError):
    """Submitted activity is malformed and was rejected before scoring."""


class MissingFieldError(ValidationError):
    """A required field is absent or empty."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"{field_name} is required")


class UnknownActivityTypeError(ValidationError):
    """activity_type is not one of the recognized categories."""

    def __init__(self, activity_type: object) -> None:
        self.activity_type = activity_type
        super().__init__(f"Unknown activity_type: {activity_type!r}")


class InvalidActivityError(ValidationError):
    """Activity payload has the wrong shape."""


class InternalStateError(ActivityMonitorError):
    """Engine state violated an invariant; should not happen under locking."""
