# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-student risk profile store.

Each student has one RiskProfile, created lazily by the first activity
and updated exactly once per processed activity. The risk level is a
function of the cumulative score and the violation count, evaluated in
order:

- critical: one contribution >= 25, total >= 60, or violations >= 5
- high: total >= 30 or violations >= 3
- medium: total >= 10 or violations >= 1
- low: otherwise

Applying activities never lowers the level; only ``decay`` and ``reset``
do. All mutation for a student happens under that student's lock stripe.
"""

import logging
from collections import Counter

from tutorwatch.core.monitoring.constants import RiskLevel
from tutorwatch.core.monitoring.exceptions import InternalStateError
from tutorwatch.core.monitoring.locks import SubjectLocks
from tutorwatch.core.monitoring.models import ActivityRecord, RiskProfile
from tutorwatch.core.monitoring.thresholds import RiskThresholds

logger = logging.getLogger(__name__)


class RiskProfileStore:
    """In-memory store of student risk profiles.

    Args:
        thresholds: Level cut-offs.
        locks: Lock stripes shared with the other per-student stores.
    """

    def __init__(
        self,
        thresholds: RiskThresholds | None = None,
        locks: SubjectLocks | None = None,
    ) -> None:
        self.thresholds = thresholds or RiskThresholds()
        self._locks = locks or SubjectLocks()
        self._profiles: dict[str, RiskProfile] = {}

    def __len__(self) -> int:
        return len(self._profiles)

    def classify(
        self,
        total_risk_score: float,
        violation_count: int,
        contribution: float = 0.0,
    ) -> RiskLevel:
        """Map score and violation count to a risk level.

        Args:
            total_risk_score: Cumulative score.
            violation_count: Violation-typed activities seen.
            contribution: Score of the activity being applied.

        Returns:
            The level for these figures, ignoring any previous level.
        """
        t = self.thresholds
        if (
            contribution >= t.critical_single_contribution
            or total_risk_score >= t.critical_total
            or violation_count >= t.critical_violations
        ):
            return RiskLevel.CRITICAL
        if total_risk_score >= t.high_total or violation_count >= t.high_violations:
            return RiskLevel.HIGH
        if total_risk_score >= t.medium_total or violation_count >= t.medium_violations:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def apply_event(
        self,
        subject_id: str,
        record: ActivityRecord,
        contribution: float,
    ) -> RiskProfile:
        """Fold one activity into the student's profile.

        Args:
            subject_id: Student the activity belongs to.
            record: Validated activity.
            contribution: Risk contribution from the scorer.

        Returns:
            Snapshot of the updated profile.

        Raises:
            InternalStateError: If the record belongs to another student.
        """
        with self._locks.for_subject(subject_id):
            profile = self.project_event(subject_id, record, contribution)
            self.commit(profile)
            return profile

    def project_event(
        self,
        subject_id: str,
        record: ActivityRecord,
        contribution: float,
    ) -> RiskProfile:
        """Return the profile as it would be after one activity.

        The stored profile is not touched; pass the result to ``commit``.

        Raises:
            InternalStateError: If the record belongs to another student.
        """
        if record.subject_id != subject_id:
            raise InternalStateError(
                f"Activity {record.id} belongs to {record.subject_id}, not {subject_id}"
            )

        with self._locks.for_subject(subject_id):
            current = self._profiles.get(subject_id)
            if current is None:
                profile = RiskProfile(subject_id=subject_id, first_seen=record.timestamp)
            else:
                profile = current.snapshot()

        profile.activity_count += 1
        if record.is_violation:
            profile.violation_count += 1
        profile.total_risk_score = round(profile.total_risk_score + contribution, 2)
        profile.last_activity = record
        profile.last_seen = record.timestamp
        profile.session_ids.add(record.session_id)

        computed = self.classify(profile.total_risk_score, profile.violation_count, contribution)
        profile.risk_level = max(profile.risk_level, computed)
        return profile

    def commit(self, profile: RiskProfile) -> None:
        """Store a profile produced by ``project_event``."""
        with self._locks.for_subject(profile.subject_id):
            if profile.subject_id not in self._profiles:
                logger.debug("Created risk profile for student %s", profile.subject_id)
            self._profiles[profile.subject_id] = profile.snapshot()

    def get_profile(self, subject_id: str) -> RiskProfile | None:
        """Return a snapshot of the student's profile, or None."""
        with self._locks.for_subject(subject_id):
            profile = self._profiles.get(subject_id)
            return profile.snapshot() if profile else None

    def decay(self, subject_id: str, factor: float) -> RiskProfile | None:
        """Scale down a student's cumulative score and re-derive the level.

        The violation count is kept, so the level never drops below what
        the violations alone justify.

        Args:
            subject_id: Student to decay.
            factor: Multiplier in [0, 1] applied to the cumulative score.

        Returns:
            Updated snapshot, or None if the student is unknown.
        """
        if not 0.0 <= factor <= 1.0:
            raise ValueError(f"factor must be within [0, 1], got {factor}")

        with self._locks.for_subject(subject_id):
            profile = self._profiles.get(subject_id)
            if profile is None:
                return None
            previous = profile.risk_level
            profile.total_risk_score = round(profile.total_risk_score * factor, 2)
            profile.risk_level = self.classify(
                profile.total_risk_score, profile.violation_count
            )
            logger.info(
                "Decayed risk profile for student %s: %s -> %s",
                subject_id,
                previous.value,
                profile.risk_level.value,
            )
            return profile.snapshot()

    def reset(self, subject_id: str) -> bool:
        """Clear a student's score and violations, keeping activity history.

        Returns:
            True if the student had a profile.
        """
        with self._locks.for_subject(subject_id):
            profile = self._profiles.get(subject_id)
            if profile is None:
                return False
            profile.total_risk_score = 0.0
            profile.violation_count = 0
            profile.risk_level = RiskLevel.LOW
            logger.info("Reset risk profile for student %s", subject_id)
            return True

    def remove(self, subject_id: str) -> bool:
        """Drop a student's profile entirely (retention sweep)."""
        with self._locks.for_subject(subject_id):
            return self._profiles.pop(subject_id, None) is not None

    def subject_ids(self) -> list[str]:
        return list(self._profiles)

    def level_distribution(self) -> dict[str, int]:
        """Count students per risk level."""
        counts = Counter({level.value: 0 for level in RiskLevel})
        for profile in list(self._profiles.values()):
            counts[profile.risk_level.value] += 1
        return dict(counts)
