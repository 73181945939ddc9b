# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity validation.

Turns a raw activity mapping from a request handler into an
ActivityRecord, or raises a ValidationError. Validation touches no
engine state, so a rejected activity leaves every store untouched.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from tutorwatch.core.monitoring.constants import ActivityType, Severity
from tutorwatch.core.monitoring.exceptions import (
    InvalidActivityError,
    MissingFieldError,
    UnknownActivityTypeError,
)
from tutorwatch.core.monitoring.models import ActivityRecord, parse_details
from tutorwatch.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# Request handlers historically sent student_id; both spellings are accepted
_SUBJECT_KEYS = ("subject_id", "student_id")


def _new_activity_id() -> str:
    return uuid4().hex


class ActivityValidator:
    """Validates raw activities and builds ActivityRecords.

    Args:
        clock: Source of ingestion timestamps.
        id_factory: Source of activity identifiers.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_activity_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory

    def validate(self, raw: Any) -> ActivityRecord:
        """Validate a raw activity.

        Args:
            raw: Mapping submitted by the request handler.

        Returns:
            ActivityRecord stamped with an id and ingestion time.

        Raises:
            InvalidActivityError: If raw, details or context is not a mapping.
            MissingFieldError: If subject_id, session_id or activity_type
                is missing or empty.
            UnknownActivityTypeError: If activity_type is not recognized.
        """
        if not isinstance(raw, Mapping):
            raise InvalidActivityError("Activity must be a mapping")

        subject_id = self._required_str(raw, _SUBJECT_KEYS, "subject_id")
        session_id = self._required_str(raw, ("session_id",), "session_id")
        activity_type = self._activity_type(raw)
        severity = self._severity(raw.get("severity"))

        details = raw.get("details")
        if details is not None and not isinstance(details, Mapping):
            raise InvalidActivityError("details must be a mapping")

        context = raw.get("context")
        if context is not None and not isinstance(context, Mapping):
            raise InvalidActivityError("context must be a mapping")

        return ActivityRecord(
            id=self._id_factory(),
            subject_id=subject_id,
            session_id=session_id,
            activity_type=activity_type,
            severity=severity,
            timestamp=self._clock(),
            details=parse_details(activity_type, details),
            context=dict(context or {}),
        )

    @staticmethod
    def _required_str(raw: Mapping[str, Any], keys: tuple[str, ...], name: str) -> str:
        for key in keys:
            value = raw.get(key)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                return text
        raise MissingFieldError(name)

    @staticmethod
    def _activity_type(raw: Mapping[str, Any]) -> ActivityType:
        value = raw.get("activity_type")
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MissingFieldError("activity_type")
        if isinstance(value, ActivityType):
            return value
        try:
            return ActivityType(str(value).strip())
        except ValueError:
            raise UnknownActivityTypeError(value) from None

    @staticmethod
    def _severity(value: Any) -> Severity:
        if isinstance(value, Severity):
            return value
        if value is None:
            return Severity.LOW
        try:
            return Severity(str(value).strip().lower())
        except ValueError:
            logger.debug("Unknown severity %r, defaulting to low", value)
            return Severity.LOW
