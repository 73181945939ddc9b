# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Constants for the activity monitoring engine.

This module defines the enums shared by the validator, scorer, profile
store, pattern detectors, and alert engine.
"""

from enum import Enum


class ActivityType(str, Enum):
    """Categories of activity submitted by the platform."""

    SAFETY_VIOLATION = "safety_violation"
    EDUCATIONAL_VIOLATION = "educational_violation"
    USAGE_ANOMALY = "usage_anomaly"
    SYSTEM_ABUSE = "system_abuse"
    LEARNING_INTERACTION = "learning_interaction"


class Severity(str, Enum):
    """Advisory severity attached to an activity or alert."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in the low..critical ordering (0-3)."""
        return _ORDER.index(self.value)


class RiskLevel(str, Enum):
    """Aggregated risk level of a student profile."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in the low..critical ordering (0-3)."""
        return _ORDER.index(self.value)

    def __ge__(self, other: object) -> bool:
        if isinstance(other, RiskLevel):
            return self.rank >= other.rank
        return NotImplemented

    def __gt__(self, other: object) -> bool:
        if isinstance(other, RiskLevel):
            return self.rank > other.rank
        return NotImplemented

    def __le__(self, other: object) -> bool:
        if isinstance(other, RiskLevel):
            return self.rank <= other.rank
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, RiskLevel):
            return self.rank < other.rank
        return NotImplemented


class PatternType(str, Enum):
    """Named recurring-behavior signatures emitted by detectors."""

    REPEATED_JAILBREAK_ATTEMPTS = "repeated_jailbreak_attempts"
    REPEATED_INAPPROPRIATE_REQUESTS = "repeated_inappropriate_requests"
    REPEATED_EDUCATIONAL_BYPASS = "repeated_educational_bypass"
    RAPID_FIRE_QUERIES = "rapid_fire_queries"
    EXCESSIVE_REQUESTS = "excessive_requests"
    SUSPICIOUS_OFF_HOURS_ACTIVITY = "suspicious_off_hours_activity"
    ESCALATING_SEVERITY = "escalating_severity"
    AUTHENTICATION_ANOMALY = "authentication_anomaly"
    PRIVILEGE_ESCALATION_ATTEMPT = "privilege_escalation_attempt"
    SESSION_MANIPULATION = "session_manipulation"
    REPEATED_VIOLATIONS = "repeated_violations"


_ORDER = ("low", "medium", "high", "critical")

VIOLATION_TYPES = frozenset(
    {
        ActivityType.SAFETY_VIOLATION,
        ActivityType.EDUCATIONAL_VIOLATION,
        ActivityType.SYSTEM_ABUSE,
    }
)

# Alert reasons for profile level transitions (pattern alerts use PatternType values)
RISK_LEVEL_REASON_PREFIX = "risk_level_"


def risk_level_reason(level: RiskLevel) -> str:
    """Build the alert reason for a transition into the given level."""
    return f"{RISK_LEVEL_REASON_PREFIX}{level.value}"
