# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Escalating severity detector.

Fires when the student's recent activities climb in severity: within the
window there are at least ``threshold`` activities, their severities
never go down, at least one step goes up, and the newest one is at or
above ``escalating_min_severity``.
"""

from collections.abc import Sequence

from tutorwatch.core.monitoring.constants import PatternType, Severity
from tutorwatch.core.monitoring.detectors.base import BasePatternDetector
from tutorwatch.core.monitoring.models import ActivityRecord, PatternMatch
from tutorwatch.core.monitoring.thresholds import CountRule


class EscalatingSeverityDetector(BasePatternDetector):
    """Detects a non-decreasing run of severities ending high."""

    def __init__(self, rule: CountRule, min_severity: Severity = Severity.HIGH) -> None:
        super().__init__(rule)
        self.min_severity = min_severity

    @property
    def name(self) -> str:
        return "escalating_severity_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.ESCALATING_SEVERITY

    def detect(
        self,
        history: Sequence[ActivityRecord],
        new_record: ActivityRecord,
    ) -> list[PatternMatch]:
        if new_record.severity.rank < self.min_severity.rank:
            return []

        recent = self.in_window(history, new_record)
        if len(recent) < self.rule.threshold:
            return []

        ranks = [r.severity.rank for r in recent]
        non_decreasing = all(later >= earlier for earlier, later in zip(ranks, ranks[1:]))
        if not non_decreasing or ranks[0] == ranks[-1]:
            return []

        return [
            self.create_match(
                new_record,
                recent,
                progression=[r.severity.value for r in recent],
            )
        ]
