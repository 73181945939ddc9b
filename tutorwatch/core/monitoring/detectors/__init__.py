# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pattern detectors for the activity monitor.

Detectors:
- RepeatedJailbreakDetector: Repeated jailbreak attempts
- RepeatedInappropriateContentDetector: Repeated inappropriate content requests
- RepeatedEducationalBypassDetector: Repeated educational policy bypass
- RepeatedViolationsDetector: Violations of any kind (opt-in)
- RapidFireDetector: Bursts of queries within a minute
- ExcessiveRequestsDetector: Sustained high request volume
- OffHoursActivityDetector: Heavy use during off-hours
- EscalatingSeverityDetector: Climbing severity of recent activity
- AuthenticationAnomalyDetector, PrivilegeEscalationDetector,
  SessionManipulationDetector: Single-event system abuse signals

Usage:
    from tutorwatch.core.monitoring.detectors import default_detectors

    detectors = default_detectors(thresholds.patterns)
    for detector in detectors:
        matches = detector.detect(history, new_record)
"""

from tutorwatch.core.monitoring.detectors.abuse import (
    AuthenticationAnomalyDetector,
    PrivilegeEscalationDetector,
    SessionManipulationDetector,
    SystemAbuseSignalDetector,
)
from tutorwatch.core.monitoring.detectors.base import BasePatternDetector, CountThresholdDetector
from tutorwatch.core.monitoring.detectors.escalation import EscalatingSeverityDetector
from tutorwatch.core.monitoring.detectors.safety import (
    RepeatedEducationalBypassDetector,
    RepeatedInappropriateContentDetector,
    RepeatedJailbreakDetector,
    RepeatedViolationsDetector,
)
from tutorwatch.core.monitoring.detectors.usage import (
    ExcessiveRequestsDetector,
    OffHoursActivityDetector,
    RapidFireDetector,
)
from tutorwatch.core.monitoring.thresholds import PatternThresholds


def default_detectors(thresholds: PatternThresholds | None = None) -> list[BasePatternDetector]:
    """Build the standard detector registry.

    Args:
        thresholds: Pattern thresholds; defaults when omitted.

    Returns:
        New list of detector instances, one per enabled pattern type.
    """
    t = thresholds or PatternThresholds()
    detectors: list[BasePatternDetector] = [
        RepeatedJailbreakDetector(t.jailbreak),
        RepeatedInappropriateContentDetector(t.inappropriate_content),
        RepeatedEducationalBypassDetector(t.educational_bypass),
        RapidFireDetector(t.rapid_fire),
        ExcessiveRequestsDetector(t.excessive_requests),
        OffHoursActivityDetector(t.off_hours, t),
        EscalatingSeverityDetector(t.escalating_severity, t.escalating_min_severity),
        AuthenticationAnomalyDetector(t.authentication_anomaly),
        PrivilegeEscalationDetector(t.privilege_escalation),
        SessionManipulationDetector(t.session_manipulation),
    ]
    if t.repeated_violations_enabled:
        detectors.append(RepeatedViolationsDetector(t.repeated_violations))
    return detectors


__all__ = [
    # Base types
    "BasePatternDetector",
    "CountThresholdDetector",
    "SystemAbuseSignalDetector",
    # Detectors
    "AuthenticationAnomalyDetector",
    "EscalatingSeverityDetector",
    "ExcessiveRequestsDetector",
    "OffHoursActivityDetector",
    "PrivilegeEscalationDetector",
    "RapidFireDetector",
    "RepeatedEducationalBypassDetector",
    "RepeatedInappropriateContentDetector",
    "RepeatedJailbreakDetector",
    "RepeatedViolationsDetector",
    "SessionManipulationDetector",
    # Registry
    "default_detectors",
]
