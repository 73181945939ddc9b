# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alert engine for security patterns and risk level transitions.

For every processed activity the engine receives the profile level
transition and the detected patterns, and raises:

- one alert per detected pattern (reason = pattern type value)
- one alert when the profile level moved up into high or critical
  (reason ``risk_level_high`` / ``risk_level_critical``)

A candidate alert is suppressed when the same student already has an
unacknowledged alert with the same reason created within the throttle
window. Acknowledging an alert re-opens alerting for that reason.

Critical alerts are marked escalated and logged at error level for the
on-call administrators; delivery itself happens outside the engine.

Usage:
    engine = AlertEngine(throttle_window_seconds=300)
    raised = engine.evaluate("student-1", transition, patterns, activity_id)
    engine.acknowledge(raised[0].id, "teacher-7")
"""

from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from uuid import uuid4

from tutorwatch.core.monitoring.constants import (
    PatternType,
    RiskLevel,
    Severity,
    risk_level_reason,
)
from tutorwatch.core.monitoring.locks import SubjectLocks
from tutorwatch.core.monitoring.models import Alert, PatternMatch, RiskLevelTransition
from tutorwatch.utils.datetime import seconds_to_human, utc_now, window_start
from tutorwatch.utils.logging import get_logger

logger = get_logger(__name__)

PATTERN_MESSAGES: dict[PatternType, str] = {
    PatternType.REPEATED_JAILBREAK_ATTEMPTS: "Repeated jailbreak attempts ({count} in window)",
    PatternType.REPEATED_INAPPROPRIATE_REQUESTS: (
        "Repeated requests for inappropriate content ({count} in window)"
    ),
    PatternType.REPEATED_EDUCATIONAL_BYPASS: (
        "Repeated attempts to bypass educational policy ({count} in window)"
    ),
    PatternType.RAPID_FIRE_QUERIES: "Rapid-fire queries ({count} within {window})",
    PatternType.EXCESSIVE_REQUESTS: "Excessive request volume ({count} within {window})",
    PatternType.SUSPICIOUS_OFF_HOURS_ACTIVITY: (
        "Heavy activity during off-hours ({count} within {window})"
    ),
    PatternType.ESCALATING_SEVERITY: "Severity of recent activity is escalating",
    PatternType.AUTHENTICATION_ANOMALY: "Authentication anomaly reported",
    PatternType.PRIVILEGE_ESCALATION_ATTEMPT: "Privilege escalation attempt",
    PatternType.SESSION_MANIPULATION: "Session manipulation detected",
    PatternType.REPEATED_VIOLATIONS: "Repeated policy violations ({count} within {window})",
}

_ALERTING_LEVELS = (RiskLevel.HIGH, RiskLevel.CRITICAL)


def _new_alert_id() -> str:
    return uuid4().hex


def pattern_message(pattern: PatternMatch) -> str:
    """Build the operator-facing message for a pattern alert."""
    template = PATTERN_MESSAGES.get(pattern.type, pattern.type.value)
    if pattern.window_seconds:
        window = seconds_to_human(int(pattern.window_seconds))
    else:
        window = "history window"
    return template.format(count=pattern.count, window=window)


class AlertEngine:
    """Raises, throttles and tracks alerts.

    Args:
        throttle_window_seconds: Duplicate suppression window per
            (student, reason).
        clock: Source of alert creation timestamps.
        locks: Lock stripes shared with the other per-student stores.
    """

    def __init__(
        self,
        throttle_window_seconds: float = 300.0,
        clock: Callable[[], datetime] = utc_now,
        locks: SubjectLocks | None = None,
        id_factory: Callable[[], str] = _new_alert_id,
    ) -> None:
        if throttle_window_seconds <= 0:
            raise ValueError(
                f"throttle_window_seconds must be positive, got {throttle_window_seconds}"
            )
        self.throttle_window_seconds = throttle_window_seconds
        self._clock = clock
        self._locks = locks or SubjectLocks()
        self._id_factory = id_factory
        self._alerts: dict[str, Alert] = {}
        self._by_subject: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self._alerts)

    @property
    def active_count(self) -> int:
        """Number of unacknowledged alerts."""
        return sum(1 for alert in list(self._alerts.values()) if not alert.acknowledged)

    def evaluate(
        self,
        subject_id: str,
        transition: RiskLevelTransition,
        patterns: Sequence[PatternMatch],
        activity_id: str | None = None,
    ) -> list[Alert]:
        """Raise the alerts due for one processed activity.

        Args:
            subject_id: Student the activity belongs to.
            transition: Profile level before and after the activity.
            patterns: Patterns detected on the activity.
            activity_id: Triggering activity.

        Returns:
            Copies of the alerts actually raised (throttled ones excluded).
        """
        with self._locks.for_subject(subject_id):
            now = self._clock()
            raised: list[Alert] = []

            for pattern in patterns:
                alert = self._build(
                    subject_id=subject_id,
                    severity=pattern.severity,
                    reason=pattern.type.value,
                    message=pattern_message(pattern),
                    now=now,
                    activity_id=activity_id,
                    supporting_event_ids=pattern.supporting_event_ids,
                )
                if alert is not None:
                    raised.append(alert)

            if transition.is_upward and transition.current in _ALERTING_LEVELS:
                previous = (transition.previous or RiskLevel.LOW).value
                alert = self._build(
                    subject_id=subject_id,
                    severity=Severity(transition.current.value),
                    reason=risk_level_reason(transition.current),
                    message=f"Risk level raised from {previous} to {transition.current.value}",
                    now=now,
                    activity_id=activity_id,
                )
                if alert is not None:
                    raised.append(alert)

            # Nothing is stored until every alert is built
            for alert in raised:
                self._store(alert)
            return [replace(alert) for alert in raised]

    def _build(
        self,
        subject_id: str,
        severity: Severity,
        reason: str,
        message: str,
        now: datetime,
        activity_id: str | None,
        supporting_event_ids: tuple[str, ...] = (),
    ) -> Alert | None:
        if self.is_throttled(subject_id, reason, now):
            logger.debug("alert_throttled", subject_id=subject_id, reason=reason)
            return None

        return Alert(
            id=self._id_factory(),
            subject_id=subject_id,
            severity=severity,
            reason=reason,
            message=message,
            created_at=now,
            activity_id=activity_id,
            supporting_event_ids=tuple(supporting_event_ids),
            escalated=severity == Severity.CRITICAL,
        )

    def _store(self, alert: Alert) -> None:
        self._alerts[alert.id] = alert
        self._by_subject.setdefault(alert.subject_id, []).append(alert.id)

        if alert.escalated:
            logger.error(
                "security_alert_escalated",
                alert_id=alert.id,
                subject_id=alert.subject_id,
                reason=alert.reason,
                alert_message=alert.message,
            )
        else:
            logger.warning(
                "security_alert_raised",
                alert_id=alert.id,
                subject_id=alert.subject_id,
                severity=alert.severity.value,
                reason=alert.reason,
            )

    def is_throttled(self, subject_id: str, reason: str, now: datetime | None = None) -> bool:
        """Check for an open alert with this reason inside the throttle window."""
        now = now or self._clock()
        start = window_start(now, self.throttle_window_seconds)
        with self._locks.for_subject(subject_id):
            for alert_id in self._by_subject.get(subject_id, ()):
                alert = self._alerts[alert_id]
                if (
                    alert.reason == reason
                    and not alert.acknowledged
                    and alert.created_at >= start
                ):
                    return True
            return False

    def acknowledge(self, alert_id: str, acknowledged_by: str) -> bool:
        """Mark an alert as acknowledged.

        Returns:
            True if the alert existed and was open; False otherwise.
        """
        alert = self._alerts.get(alert_id)
        if alert is None:
            return False

        with self._locks.for_subject(alert.subject_id):
            if alert.acknowledged:
                return False
            alert.acknowledge(acknowledged_by, self._clock())

        logger.info(
            "security_alert_acknowledged",
            alert_id=alert_id,
            subject_id=alert.subject_id,
            acknowledged_by=acknowledged_by,
        )
        return True

    def get_alert(self, alert_id: str) -> Alert | None:
        alert = self._alerts.get(alert_id)
        return replace(alert) if alert else None

    def list_alerts(
        self,
        subject_id: str | None = None,
        severity: Severity | None = None,
        acknowledged: bool | None = None,
        reason: str | None = None,
        since: datetime | None = None,
    ) -> list[Alert]:
        """Return alerts matching every given filter, newest first."""
        if subject_id is not None:
            with self._locks.for_subject(subject_id):
                candidates = [self._alerts[i] for i in self._by_subject.get(subject_id, ())]
        else:
            candidates = list(self._alerts.values())

        result = [
            replace(alert)
            for alert in candidates
            if (severity is None or alert.severity == severity)
            and (acknowledged is None or alert.acknowledged == acknowledged)
            and (reason is None or alert.reason == reason)
            and (since is None or alert.created_at >= since)
        ]
        result.sort(key=lambda a: a.created_at, reverse=True)
        return result

    def remove_subject(self, subject_id: str) -> int:
        """Drop every alert of a student.

        Returns:
            Number of alerts removed.
        """
        with self._locks.for_subject(subject_id):
            alert_ids = self._by_subject.pop(subject_id, [])
            for alert_id in alert_ids:
                self._alerts.pop(alert_id, None)
            return len(alert_ids)

    def prune(self, cutoff: datetime) -> int:
        """Drop alerts created before cutoff.

        Returns:
            Number of alerts removed.
        """
        removed = 0
        for subject_id in list(self._by_subject):
            with self._locks.for_subject(subject_id):
                alert_ids = self._by_subject.get(subject_id)
                if alert_ids is None:
                    continue
                kept = []
                for alert_id in alert_ids:
                    if self._alerts[alert_id].created_at < cutoff:
                        del self._alerts[alert_id]
                        removed += 1
                    else:
                        kept.append(alert_id)
                if kept:
                    self._by_subject[subject_id] = kept
                else:
                    del self._by_subject[subject_id]
        return removed
