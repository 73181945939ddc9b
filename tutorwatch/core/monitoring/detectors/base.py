# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base detector classes for threat pattern detection.

A detector inspects a student's retained activity history together with
the activity being processed and returns zero or more PatternMatch
objects. Detectors are independent of each other and hold no state
between calls, so the registry is a plain list built at startup and
injected into the monitor.

Counting rules are inclusive of the new activity: a threshold of 4
fires on the fourth matching activity inside the window.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from tutorwatch.core.monitoring.constants import PatternType
from tutorwatch.core.monitoring.models import ActivityRecord, PatternMatch
from tutorwatch.core.monitoring.thresholds import CountRule
from tutorwatch.utils.datetime import window_start


class BasePatternDetector(ABC):
    """Abstract base class for pattern detectors.

    Args:
        rule: Threshold, window and severity for this detector.
    """

    def __init__(self, rule: CountRule) -> None:
        self.rule = rule
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the detector name."""
        ...

    @property
    @abstractmethod
    def pattern_type(self) -> PatternType:
        """Return the pattern this detector emits."""
        ...

    @abstractmethod
    def detect(
        self,
        history: Sequence[ActivityRecord],
        new_record: ActivityRecord,
    ) -> list[PatternMatch]:
        """Inspect history plus the new activity.

        Args:
            history: Student's earlier retained activities, oldest first.
                May be empty.
            new_record: Activity being processed (not in history).

        Returns:
            Detected patterns, usually zero or one.
        """
        ...

    def in_window(
        self,
        history: Sequence[ActivityRecord],
        new_record: ActivityRecord,
    ) -> list[ActivityRecord]:
        """Return history plus new_record restricted to the rule window.

        Without a window, the whole history handed in counts.
        """
        records = [r for r in history if r.id != new_record.id]
        records.append(new_record)
        if self.rule.window_seconds is None:
            return records
        start = window_start(new_record.timestamp, self.rule.window_seconds)
        return [r for r in records if r.timestamp >= start]

    def create_match(
        self,
        new_record: ActivityRecord,
        supporting: Sequence[ActivityRecord],
        **details: object,
    ) -> PatternMatch:
        """Helper to build a PatternMatch for this detector."""
        return PatternMatch(
            type=self.pattern_type,
            subject_id=new_record.subject_id,
            supporting_event_ids=tuple(r.id for r in supporting),
            detected_at=new_record.timestamp,
            severity=self.rule.severity,
            count=len(supporting),
            window_seconds=self.rule.window_seconds,
            details=dict(details),
        )


class CountThresholdDetector(BasePatternDetector):
    """Fires when enough matching activities fall inside the window.

    Only a matching new activity can trigger the pattern, so unrelated
    activity after a burst does not re-report it.
    """

    @abstractmethod
    def matches(self, record: ActivityRecord) -> bool:
        """Check if an activity counts towards this pattern."""
        ...

    def detect(
        self,
        history: Sequence[ActivityRecord],
        new_record: ActivityRecord,
    ) -> list[PatternMatch]:
        if not self.matches(new_record):
            return []

        supporting = [r for r in self.in_window(history, new_record) if self.matches(r)]
        if len(supporting) < self.rule.threshold:
            return []

        self.logger.debug(
            "%s matched for student %s: %d activities",
            self.pattern_type.value,
            new_record.subject_id,
            len(supporting),
        )
        return [self.create_match(new_record, supporting)]
