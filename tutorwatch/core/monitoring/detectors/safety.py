# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Detectors for repeated safety and educational policy violations.

How a tutor request gets classified as a jailbreak or as inappropriate
content is decided upstream; these detectors only count the classified
violations a student accumulates inside the history window.
"""

from tutorwatch.core.monitoring.constants import ActivityType, PatternType
from tutorwatch.core.monitoring.detectors.base import CountThresholdDetector
from tutorwatch.core.monitoring.models import ActivityRecord, SafetyViolationDetails

JAILBREAK = "jailbreak"
INAPPROPRIATE_CONTENT = "inappropriate_content"


def _is_safety_violation_of(record: ActivityRecord, violation_type: str) -> bool:
    return (
        record.activity_type == ActivityType.SAFETY_VIOLATION
        and isinstance(record.details, SafetyViolationDetails)
        and record.details.violation_type == violation_type
    )


class RepeatedJailbreakDetector(CountThresholdDetector):
    """Repeated attempts to break the tutor's safety instructions."""

    @property
    def name(self) -> str:
        return "repeated_jailbreak_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.REPEATED_JAILBREAK_ATTEMPTS

    def matches(self, record: ActivityRecord) -> bool:
        return _is_safety_violation_of(record, JAILBREAK)


class RepeatedInappropriateContentDetector(CountThresholdDetector):
    """Repeated requests for content unsuitable for students."""

    @property
    def name(self) -> str:
        return "repeated_inappropriate_content_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.REPEATED_INAPPROPRIATE_REQUESTS

    def matches(self, record: ActivityRecord) -> bool:
        return _is_safety_violation_of(record, INAPPROPRIATE_CONTENT)


class RepeatedEducationalBypassDetector(CountThresholdDetector):
    """Repeated attempts to get answers without doing the learning."""

    @property
    def name(self) -> str:
        return "repeated_educational_bypass_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.REPEATED_EDUCATIONAL_BYPASS

    def matches(self, record: ActivityRecord) -> bool:
        return record.activity_type == ActivityType.EDUCATIONAL_VIOLATION


class RepeatedViolationsDetector(CountThresholdDetector):
    """Violations of any kind piling up in a short window.

    Not part of the default registry; enable it with
    ``repeated_violations_enabled``.
    """

    @property
    def name(self) -> str:
        return "repeated_violations_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.REPEATED_VIOLATIONS

    def matches(self, record: ActivityRecord) -> bool:
        return record.is_violation
