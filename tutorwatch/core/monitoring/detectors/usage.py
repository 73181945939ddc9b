# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Usage anomaly detectors.

These look at volume and timing rather than content: bursts of queries
within a minute, sustained high volume, and heavy use during off-hours.
Every activity type counts towards volume.
"""

from collections.abc import Sequence

from tutorwatch.core.monitoring.constants import PatternType
from tutorwatch.core.monitoring.detectors.base import BasePatternDetector, CountThresholdDetector
from tutorwatch.core.monitoring.models import ActivityRecord, PatternMatch
from tutorwatch.core.monitoring.thresholds import CountRule, PatternThresholds


class RapidFireDetector(CountThresholdDetector):
    """Many activities inside a short sliding window (default 10 in 60s)."""

    @property
    def name(self) -> str:
        return "rapid_fire_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.RAPID_FIRE_QUERIES

    def matches(self, record: ActivityRecord) -> bool:
        return True


class ExcessiveRequestsDetector(CountThresholdDetector):
    """Sustained volume over a longer window (default 50 in 10 minutes)."""

    @property
    def name(self) -> str:
        return "excessive_requests_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.EXCESSIVE_REQUESTS

    def matches(self, record: ActivityRecord) -> bool:
        return True


class OffHoursActivityDetector(BasePatternDetector):
    """Heavy use during off-hours (default 20 in an hour, 22:00-06:00 UTC)."""

    def __init__(self, rule: CountRule, thresholds: PatternThresholds) -> None:
        super().__init__(rule)
        self._thresholds = thresholds

    @property
    def name(self) -> str:
        return "off_hours_activity_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.SUSPICIOUS_OFF_HOURS_ACTIVITY

    def is_off_hours(self, record: ActivityRecord) -> bool:
        return self._thresholds.is_off_hours(record.timestamp.hour)

    def detect(
        self,
        history: Sequence[ActivityRecord],
        new_record: ActivityRecord,
    ) -> list[PatternMatch]:
        if not self.is_off_hours(new_record):
            return []

        supporting = [r for r in self.in_window(history, new_record) if self.is_off_hours(r)]
        if len(supporting) < self.rule.threshold:
            return []

        return [
            self.create_match(
                new_record,
                supporting,
                off_hours_start=self._thresholds.off_hours_start,
                off_hours_end=self._thresholds.off_hours_end,
            )
        ]
