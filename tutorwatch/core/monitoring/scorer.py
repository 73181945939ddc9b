# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Risk scoring for single activities.

The contribution of an activity is its severity base plus additive
modifiers:

- violation types add ``violation_modifier`` x base
- confirmed repeats (``details.repeated``) add ``repeat_modifier`` x base
- system abuse carrying an auth anomaly or privilege escalation is
  floored at ``abuse_floor`` whatever its stated severity

The scorer is pure: the same record and profile snapshot always give the
same score.
"""

from tutorwatch.core.monitoring.constants import ActivityType
from tutorwatch.core.monitoring.models import ActivityRecord, RiskProfile, SystemAbuseDetails
from tutorwatch.core.monitoring.thresholds import RiskThresholds


class RiskScorer:
    """Maps an activity to its risk contribution."""

    def __init__(self, thresholds: RiskThresholds | None = None) -> None:
        self.thresholds = thresholds or RiskThresholds()

    def score(self, record: ActivityRecord, profile: RiskProfile | None = None) -> float:
        """Compute the risk contribution of an activity.

        Args:
            record: Validated activity.
            profile: Student profile before this activity (None on first
                contact). Reserved for profile-aware modifiers; the current
                policy does not read it.

        Returns:
            Contribution rounded to two decimals.
        """
        t = self.thresholds
        base = t.base_score(record.severity)
        contribution = base

        if record.is_violation:
            contribution += base * t.violation_modifier

        if record.details.repeated:
            contribution += base * t.repeat_modifier

        if (
            record.activity_type == ActivityType.SYSTEM_ABUSE
            and isinstance(record.details, SystemAbuseDetails)
            and record.details.has_max_confidence_signal
        ):
            contribution = max(contribution, t.abuse_floor)

        return round(contribution, 2)
