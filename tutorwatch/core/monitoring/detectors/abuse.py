# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""System abuse detectors.

Authentication anomalies, privilege escalation and session manipulation
are single-event triggers: one system_abuse activity carrying the signal
is enough, no counting involved.
"""

from abc import abstractmethod
from collections.abc import Sequence

from tutorwatch.core.monitoring.constants import ActivityType, PatternType
from tutorwatch.core.monitoring.detectors.base import BasePatternDetector
from tutorwatch.core.monitoring.models import (
    AbuseSignal,
    ActivityRecord,
    PatternMatch,
    SystemAbuseDetails,
)


class SystemAbuseSignalDetector(BasePatternDetector):
    """Emits a pattern when the new activity carries a given abuse signal."""

    @abstractmethod
    def signal(self, details: SystemAbuseDetails) -> AbuseSignal | None:
        """Pick this detector's signal out of the details."""
        ...

    def detect(
        self,
        history: Sequence[ActivityRecord],
        new_record: ActivityRecord,
    ) -> list[PatternMatch]:
        if new_record.activity_type != ActivityType.SYSTEM_ABUSE:
            return []
        if not isinstance(new_record.details, SystemAbuseDetails):
            return []

        signal = self.signal(new_record.details)
        if signal is None:
            return []

        return [self.create_match(new_record, [new_record], signal=signal.to_dict())]


class AuthenticationAnomalyDetector(SystemAbuseSignalDetector):
    @property
    def name(self) -> str:
        return "authentication_anomaly_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.AUTHENTICATION_ANOMALY

    def signal(self, details: SystemAbuseDetails) -> AbuseSignal | None:
        return details.auth_anomaly


class PrivilegeEscalationDetector(SystemAbuseSignalDetector):
    @property
    def name(self) -> str:
        return "privilege_escalation_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.PRIVILEGE_ESCALATION_ATTEMPT

    def signal(self, details: SystemAbuseDetails) -> AbuseSignal | None:
        return details.privilege_escalation


class SessionManipulationDetector(SystemAbuseSignalDetector):
    @property
    def name(self) -> str:
        return "session_manipulation_detector"

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.SESSION_MANIPULATION

    def signal(self, details: SystemAbuseDetails) -> AbuseSignal | None:
        return details.session_manipulation
