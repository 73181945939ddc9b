# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data structures for the activity monitoring engine.

ActivityRecord is the unit flowing through the pipeline. Its ``details``
payload is a tagged union keyed by activity type: each variant exposes
the signals the scorer and detectors care about as typed attributes and
keeps everything else in an open ``extra`` map, so new upstream keys
never break ingestion.

RiskProfile, Alert and SessionSummary are mutable and owned by their
stores; callers only ever receive copies of profiles.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from tutorwatch.core.monitoring.constants import (
    VIOLATION_TYPES,
    ActivityType,
    PatternType,
    RiskLevel,
    Severity,
)
from tutorwatch.utils.datetime import format_iso


# =============================================================================
# Activity details (tagged union keyed by ActivityType)
# =============================================================================


@dataclass(frozen=True)
class AbuseSignal:
    """A system-abuse signal reported by the authentication layer.

    Attributes:
        reason: Short upstream reason (e.g. "token_reuse"), if provided.
        data: Raw payload of the signal when it was a mapping.
    """

    reason: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason, "data": dict(self.data)}


@dataclass(frozen=True)
class AuthAnomalyDetails(AbuseSignal):
    """Authentication anomaly (impossible travel, token reuse, ...)."""


@dataclass(frozen=True)
class PrivilegeEscalationDetails(AbuseSignal):
    """Attempt to reach a role or resource above the student's grant."""


@dataclass(frozen=True)
class SessionManipulationDetails(AbuseSignal):
    """Tampering with session identifiers or cookies."""


@dataclass(frozen=True)
class ActivityDetails:
    """Fields common to every details variant.

    Attributes:
        repeated: Upstream marked this as a confirmed repeat offense.
        extra: Keys not understood by this variant, kept verbatim.
    """

    repeated: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"repeated": self.repeated, **self.extra}


@dataclass(frozen=True)
class SafetyViolationDetails(ActivityDetails):
    """Details of a safety violation (jailbreak, inappropriate content)."""

    violation_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "violation_type": self.violation_type}


@dataclass(frozen=True)
class EducationalViolationDetails(ActivityDetails):
    """Details of an attempt to bypass the tutor's educational policy."""

    violation_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "violation_type": self.violation_type}


@dataclass(frozen=True)
class UsageAnomalyDetails(ActivityDetails):
    """Details of a usage anomaly flagged upstream."""

    anomaly_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "anomaly_type": self.anomaly_type}


@dataclass(frozen=True)
class SystemAbuseDetails(ActivityDetails):
    """Details of a system abuse event with its typed signals."""

    auth_anomaly: AuthAnomalyDetails | None = None
    privilege_escalation: PrivilegeEscalationDetails | None = None
    session_manipulation: SessionManipulationDetails | None = None

    @property
    def has_max_confidence_signal(self) -> bool:
        """Auth anomalies and privilege escalation are trusted outright."""
        return self.auth_anomaly is not None or self.privilege_escalation is not None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        for key in ("auth_anomaly", "privilege_escalation", "session_manipulation"):
            signal = getattr(self, key)
            data[key] = signal.to_dict() if signal else None
        return data


@dataclass(frozen=True)
class LearningInteractionDetails(ActivityDetails):
    """Details of an ordinary tutor interaction."""

    interaction_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "interaction_type": self.interaction_type}


def _pick(raw: Mapping[str, Any], *keys: str) -> tuple[Any, set[str]]:
    """Return the first present value among keys and the keys consumed."""
    consumed = {k for k in keys if k in raw}
    for key in keys:
        if key in raw:
            return raw[key], consumed
    return None, consumed


_TRUE_STRINGS = frozenset({"true", "1", "yes"})


def _parse_flag(value: Any) -> bool:
    """Interpret an explicit boolean flag; anything else is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, int):
        return value == 1
    return False


def _parse_signal(signal_cls: type[AbuseSignal], value: Any) -> AbuseSignal | None:
    if not value:
        return None
    if isinstance(value, Mapping):
        reason = value.get("reason") or value.get("type")
        return signal_cls(reason=str(reason) if reason else None, data=dict(value))
    if value is True:
        return signal_cls()
    return signal_cls(reason=str(value))


def parse_details(activity_type: ActivityType, raw: Mapping[str, Any] | None) -> ActivityDetails:
    """Build the typed details variant for an activity type.

    Accepts both the platform's camelCase keys (``violationType``,
    ``authAnomaly``) and snake_case keys.

    Args:
        activity_type: Validated activity type selecting the variant.
        raw: Untyped details mapping as submitted.

    Returns:
        The matching ActivityDetails subclass.
    """
    raw = dict(raw or {})
    repeated_value, consumed = _pick(raw, "repeated", "repeatedOffense", "repeated_offense")
    repeated = _parse_flag(repeated_value)

    if activity_type in (ActivityType.SAFETY_VIOLATION, ActivityType.EDUCATIONAL_VIOLATION):
        violation, used = _pick(raw, "violationType", "violation_type", "type", "category")
        consumed |= used
        extra = {k: v for k, v in raw.items() if k not in consumed}
        variant = (
            SafetyViolationDetails
            if activity_type == ActivityType.SAFETY_VIOLATION
            else EducationalViolationDetails
        )
        return variant(
            repeated=repeated,
            extra=extra,
            violation_type=str(violation) if violation else None,
        )

    if activity_type == ActivityType.SYSTEM_ABUSE:
        auth, used_auth = _pick(raw, "authAnomaly", "auth_anomaly")
        priv, used_priv = _pick(raw, "privilegeEscalation", "privilege_escalation")
        session, used_session = _pick(raw, "sessionManipulation", "session_manipulation")
        consumed |= used_auth | used_priv | used_session
        return SystemAbuseDetails(
            repeated=repeated,
            extra={k: v for k, v in raw.items() if k not in consumed},
            auth_anomaly=_parse_signal(AuthAnomalyDetails, auth),
            privilege_escalation=_parse_signal(PrivilegeEscalationDetails, priv),
            session_manipulation=_parse_signal(SessionManipulationDetails, session),
        )

    if activity_type == ActivityType.USAGE_ANOMALY:
        anomaly, used = _pick(raw, "anomalyType", "anomaly_type", "type")
        consumed |= used
        return UsageAnomalyDetails(
            repeated=repeated,
            extra={k: v for k, v in raw.items() if k not in consumed},
            anomaly_type=str(anomaly) if anomaly else None,
        )

    interaction, used = _pick(raw, "interactionType", "interaction_type", "type")
    consumed |= used
    return LearningInteractionDetails(
        repeated=repeated,
        extra={k: v for k, v in raw.items() if k not in consumed},
        interaction_type=str(interaction) if interaction else None,
    )


# =============================================================================
# Records, profiles, patterns, alerts
# =============================================================================


@dataclass(frozen=True)
class ActivityRecord:
    """One submitted activity, immutable once appended to the log.

    Attributes:
        id: Unique activity identifier.
        subject_id: Student the activity belongs to.
        session_id: Tutor session the activity happened in.
        activity_type: Validated activity category.
        severity: Advisory severity (unknown values coerced to low).
        timestamp: Ingestion time (UTC).
        details: Typed details variant.
        context: Free-form request context (route, client, ...).
        risk_score: Risk contribution computed by the scorer.
        risk_level: Profile level right after this activity was applied.
        flagged: At least one pattern was detected on this activity.
        suspicious: Activity qualifies for the suspicious-activity listing.
    """

    id: str
    subject_id: str
    session_id: str
    activity_type: ActivityType
    severity: Severity
    timestamp: datetime
    details: ActivityDetails = field(default_factory=ActivityDetails)
    context: dict[str, Any] = field(default_factory=dict)
    risk_score: float = 0.0
    risk_level: RiskLevel | None = None
    flagged: bool = False
    suspicious: bool = False

    @property
    def is_violation(self) -> bool:
        """Check if the activity counts towards the violation counter."""
        return self.activity_type in VIOLATION_TYPES

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "session_id": self.session_id,
            "activity_type": self.activity_type.value,
            "severity": self.severity.value,
            "timestamp": format_iso(self.timestamp),
            "details": self.details.to_dict(),
            "context": dict(self.context),
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "flagged": self.flagged,
            "suspicious": self.suspicious,
        }


@dataclass
class RiskProfile:
    """Aggregated risk state of one student.

    Attributes:
        subject_id: Student identifier.
        risk_level: Current level, non-decreasing except via reset/decay.
        activity_count: Number of activities applied.
        violation_count: Number of violation-typed activities applied.
        total_risk_score: Cumulative risk contribution.
        first_seen: Timestamp of the first activity.
        last_seen: Timestamp of the latest activity.
        last_activity: Most recent activity record.
        session_ids: Sessions the student has been seen in.
    """

    subject_id: str
    risk_level: RiskLevel = RiskLevel.LOW
    activity_count: int = 0
    violation_count: int = 0
    total_risk_score: float = 0.0
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    last_activity: ActivityRecord | None = None
    session_ids: set[str] = field(default_factory=set)

    def snapshot(self) -> "RiskProfile":
        """Return a copy safe to hand out to readers."""
        return replace(self, session_ids=set(self.session_ids))

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "risk_level": self.risk_level.value,
            "activity_count": self.activity_count,
            "violation_count": self.violation_count,
            "total_risk_score": round(self.total_risk_score, 2),
            "first_seen": format_iso(self.first_seen),
            "last_seen": format_iso(self.last_seen),
            "last_activity_id": self.last_activity.id if self.last_activity else None,
            "session_count": len(self.session_ids),
        }


@dataclass(frozen=True)
class RiskLevelTransition:
    """Profile level before and after one activity."""

    previous: RiskLevel | None
    current: RiskLevel

    @property
    def is_upward(self) -> bool:
        baseline = self.previous or RiskLevel.LOW
        return self.current > baseline


@dataclass(frozen=True)
class PatternMatch:
    """Output of one detector run for one activity.

    Attributes:
        type: Pattern signature detected.
        subject_id: Student the pattern belongs to.
        supporting_event_ids: Activities that make up the pattern.
        detected_at: Timestamp of the triggering activity.
        severity: Severity carried into the alert.
        count: Number of matching activities in the window.
        window_seconds: Window length used (None for single-event triggers).
        details: Detector-specific extras.
    """

    type: PatternType
    subject_id: str
    supporting_event_ids: tuple[str, ...]
    detected_at: datetime
    severity: Severity
    count: int = 1
    window_seconds: float | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "subject_id": self.subject_id,
            "supporting_event_ids": list(self.supporting_event_ids),
            "detected_at": format_iso(self.detected_at),
            "severity": self.severity.value,
            "count": self.count,
            "window_seconds": self.window_seconds,
            "details": dict(self.details),
        }


@dataclass
class Alert:
    """Operator-facing notification.

    Attributes:
        id: Unique alert identifier.
        subject_id: Student the alert is about.
        severity: Alert severity.
        reason: Pattern type value or risk-level reason.
        message: Human-readable description.
        created_at: Creation time.
        activity_id: Activity that triggered the alert.
        supporting_event_ids: Activities backing a pattern alert.
        escalated: Critical alert handed to administrators.
        acknowledged: Operator acknowledged the alert.
        acknowledged_by: Operator id.
        acknowledged_at: Acknowledgement time.
    """

    id: str
    subject_id: str
    severity: Severity
    reason: str
    message: str
    created_at: datetime
    activity_id: str | None = None
    supporting_event_ids: tuple[str, ...] = ()
    escalated: bool = False
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None

    def acknowledge(self, acknowledged_by: str, at: datetime) -> None:
        self.acknowledged = True
        self.acknowledged_by = acknowledged_by
        self.acknowledged_at = at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "severity": self.severity.value,
            "reason": self.reason,
            "message": self.message,
            "created_at": format_iso(self.created_at),
            "activity_id": self.activity_id,
            "supporting_event_ids": list(self.supporting_event_ids),
            "escalated": self.escalated,
            "acknowledged": self.acknowledged,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": format_iso(self.acknowledged_at),
        }


@dataclass
class SessionSummary:
    """Running counters for one tutor session."""

    session_id: str
    subject_id: str
    started_at: datetime
    last_activity_at: datetime
    activity_count: int = 0
    risk_score: float = 0.0
    flagged_activity_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "subject_id": self.subject_id,
            "started_at": format_iso(self.started_at),
            "last_activity_at": format_iso(self.last_activity_at),
            "activity_count": self.activity_count,
            "risk_score": round(self.risk_score, 2),
            "flagged_activity_ids": list(self.flagged_activity_ids),
        }


@dataclass
class LogResult:
    """Synchronous outcome of ``log_activity``.

    ``logged`` is False when the activity was dropped; ``error`` then
    explains why and no state was changed.
    """

    logged: bool
    activity_id: str | None = None
    risk_score: float | None = None
    risk_level: RiskLevel | None = None
    flagged: bool = False
    patterns: list[PatternMatch] = field(default_factory=list)
    alerts_raised: list[Alert] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "LogResult":
        return cls(logged=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        if not self.logged:
            return {"logged": False, "activity_id": None, "error": self.error}
        return {
            "logged": True,
            "activity_id": self.activity_id,
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "flagged": self.flagged,
            "patterns": [p.to_dict() for p in self.patterns],
            "alerts_raised": [a.to_dict() for a in self.alerts_raised],
        }


@dataclass
class SweepResult:
    """What one retention sweep evicted."""

    cutoff: datetime
    activities_removed: int = 0
    profiles_removed: int = 0
    alerts_removed: int = 0
    sessions_removed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cutoff": format_iso(self.cutoff),
            "activities_removed": self.activities_removed,
            "profiles_removed": self.profiles_removed,
            "alerts_removed": self.alerts_removed,
            "sessions_removed": self.sessions_removed,
        }
