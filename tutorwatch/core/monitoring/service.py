# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity monitor service.

This service is the single entry point request handlers call. It wires
the validator, scorer, profile store, pattern detectors, alert engine
and activity log, and exposes the query surface used by teacher and
administrator dashboards.

Each activity is processed synchronously under its student's lock
stripe: validate, score, detect patterns, project the risk profile,
raise alerts, then commit the profile and append to the log. Nothing is
written until every fallible step has passed, so a failed activity
leaves every store unchanged and a retry is counted once. Students
on different stripes are processed in parallel; the only process-wide
lock is the single-flight guard of the retention sweep.

Usage:
    monitor = ActivityMonitor()
    monitor.start()  # optional background retention sweep

    result = monitor.log_activity({
        "subject_id": "student-42",
        "session_id": "sess-1",
        "activity_type": "safety_violation",
        "severity": "high",
        "details": {"violationType": "jailbreak"},
    })
    if result.logged:
        profile = monitor.get_student_risk_profile("student-42")

    open_alerts = monitor.get_alerts(acknowledged=False)
    monitor.shutdown()
"""

import threading
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tutorwatch.core.config.settings import MonitoringSettings, get_settings
from tutorwatch.core.monitoring.activity_log import ActivityLog
from tutorwatch.core.monitoring.alerts import AlertEngine
from tutorwatch.core.monitoring.constants import ActivityType, RiskLevel, Severity
from tutorwatch.core.monitoring.detectors import BasePatternDetector, default_detectors
from tutorwatch.core.monitoring.exceptions import ActivityMonitorError, ValidationError
from tutorwatch.core.monitoring.locks import SubjectLocks
from tutorwatch.core.monitoring.models import (
    ActivityRecord,
    Alert,
    LogResult,
    PatternMatch,
    RiskLevelTransition,
    RiskProfile,
    SessionSummary,
    SweepResult,
)
from tutorwatch.core.monitoring.profiles import RiskProfileStore
from tutorwatch.core.monitoring.scorer import RiskScorer
from tutorwatch.core.monitoring.thresholds import MonitoringThresholds, get_thresholds
from tutorwatch.core.monitoring.validator import ActivityValidator
from tutorwatch.utils.datetime import (
    coerce_datetime,
    seconds_to_human,
    utc_now,
    window_start,
)
from tutorwatch.utils.logging import get_logger

logger = get_logger(__name__)


class RetentionScheduler:
    """Runs the retention sweep on an APScheduler interval job.

    A fresh ``BackgroundScheduler`` is created on every start so the
    monitor can be stopped and started again.

    Args:
        sweep: Callable performing one sweep.
        interval_seconds: Pause between sweeps.
    """

    JOB_ID = "activity-retention-sweep"

    def __init__(self, sweep: Callable[[], Any], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._sweep = sweep
        self.interval_seconds = interval_seconds
        self._scheduler: BackgroundScheduler | None = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start the sweep job (no-op if already running)."""
        if self.is_running:
            return
        self._scheduler = BackgroundScheduler(daemon=True, timezone="UTC")
        self._scheduler.add_job(
            self._run_sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Activity retention sweep",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("retention_scheduler_started", interval_seconds=self.interval_seconds)

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler, optionally waiting for a running sweep."""
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("retention_scheduler_stopped")

    def _run_sweep(self) -> None:
        try:
            self._sweep()
        except Exception as e:
            # Keep the job scheduled; the next tick retries
            logger.error("retention_sweep_failed", error=str(e), exc_info=True)


class ActivityMonitor:
    """In-process activity monitoring and risk scoring engine.

    Args:
        settings: Runtime settings; defaults to ``get_settings().monitoring``.
        thresholds: Scoring and pattern thresholds; defaults to the
            configured YAML file.
        detectors: Pattern detector registry; defaults to
            ``default_detectors(thresholds.patterns)``.
        clock: Source of timestamps for activities and alerts.
    """

    def __init__(
        self,
        settings: MonitoringSettings | None = None,
        thresholds: MonitoringThresholds | None = None,
        detectors: Sequence[BasePatternDetector] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings or get_settings().monitoring
        self.thresholds = thresholds or get_thresholds(self.settings.thresholds_file)
        self._clock = clock
        self._locks = SubjectLocks(self.settings.lock_stripes)

        self.validator = ActivityValidator(clock=clock)
        self.scorer = RiskScorer(self.thresholds.risk)
        self.profiles = RiskProfileStore(self.thresholds.risk, self._locks)
        self.activity_log = ActivityLog(self.settings.max_history_per_subject, self._locks)
        self.alerts = AlertEngine(self.settings.throttle_window_seconds, clock, self._locks)
        self.detectors: list[BasePatternDetector] = (
            list(detectors)
            if detectors is not None
            else default_detectors(self.thresholds.patterns)
        )

        self._accepting = True
        self._started_at = clock()
        self._sweep_lock = threading.Lock()
        self._counter_lock = threading.Lock()
        self._rejected_count = 0
        self._last_sweep: SweepResult | None = None
        self._scheduler = RetentionScheduler(
            self.cleanup_old_data, self.settings.cleanup_interval_seconds
        )

        logger.info(
            "activity_monitor_initialized",
            pattern_detectors=len(self.detectors),
            lock_stripes=len(self._locks),
        )

    @property
    def is_accepting(self) -> bool:
        return self._accepting

    # =========================================================================
    # Ingestion
    # =========================================================================

    def log_activity(self, activity: Any) -> LogResult:
        """Validate, score and record one activity.

        Never raises: malformed input and internal failures come back as
        ``LogResult(logged=False, error=...)`` and leave state unchanged.

        Args:
            activity: Mapping with ``subject_id`` (or ``student_id``),
                ``session_id``, ``activity_type`` and optional ``severity``,
                ``details`` and ``context``.

        Returns:
            LogResult with the activity id, its risk contribution, the
            resulting profile level, detected patterns and raised alerts.
        """
        if not self._accepting:
            self._count_rejected()
            return LogResult.failed("Activity monitor is shut down")

        try:
            record = self.validator.validate(activity)
        except ValidationError as e:
            self._count_rejected()
            logger.warning("activity_rejected", error=e.message)
            return LogResult.failed(e.message)

        try:
            return self._process(record)
        except ActivityMonitorError as e:
            logger.error(
                "activity_processing_failed",
                activity_id=record.id,
                subject_id=record.subject_id,
                error=e.message,
                exc_info=True,
            )
            return LogResult.failed(e.message)
        except Exception as e:
            logger.error(
                "activity_processing_failed",
                activity_id=record.id,
                subject_id=record.subject_id,
                error=str(e),
                exc_info=True,
            )
            return LogResult.failed("Internal error while processing activity")

    def _process(self, record: ActivityRecord) -> LogResult:
        subject_id = record.subject_id
        risk = self.thresholds.risk

        with self._locks.for_subject(subject_id):
            previous = self.profiles.get_profile(subject_id)
            contribution = self.scorer.score(record, previous)
            record = replace(record, risk_score=contribution)

            since = window_start(record.timestamp, self.settings.history_window_seconds)
            history = self.activity_log.history(subject_id, since=since)
            patterns = self._detect(history, record)

            profile = self.profiles.project_event(subject_id, record, contribution)
            transition = RiskLevelTransition(
                previous=previous.risk_level if previous else None,
                current=profile.risk_level,
            )

            flagged = bool(patterns)
            suspicious = (
                contribution >= risk.suspicious_contribution
                or (transition.is_upward and profile.risk_level >= RiskLevel.MEDIUM)
                or flagged
            )
            record = replace(
                record,
                risk_level=profile.risk_level,
                flagged=flagged,
                suspicious=suspicious,
            )
            profile.last_activity = record

            # Alerts are the last step that can fail; the profile and log
            # are only written once they succeed
            raised = self.alerts.evaluate(subject_id, transition, patterns, record.id)
            self.profiles.commit(profile)
            self.activity_log.append(record)

        logger.debug(
            "activity_logged",
            activity_id=record.id,
            subject_id=subject_id,
            activity_type=record.activity_type.value,
            risk_score=contribution,
            risk_level=profile.risk_level.value,
            patterns=[p.type.value for p in patterns],
        )

        return LogResult(
            logged=True,
            activity_id=record.id,
            risk_score=contribution,
            risk_level=profile.risk_level,
            flagged=flagged,
            patterns=patterns,
            alerts_raised=raised,
        )

    def _detect(
        self,
        history: Sequence[ActivityRecord],
        record: ActivityRecord,
    ) -> list[PatternMatch]:
        patterns: list[PatternMatch] = []
        for detector in self.detectors:
            try:
                patterns.extend(detector.detect(history, record))
            except Exception as e:
                logger.error(
                    "pattern_detector_failed",
                    detector=detector.name,
                    subject_id=record.subject_id,
                    error=str(e),
                    exc_info=True,
                )
                # Continue with other detectors
        return patterns

    def _count_rejected(self) -> None:
        with self._counter_lock:
            self._rejected_count += 1

    # =========================================================================
    # Profiles
    # =========================================================================

    def get_student_risk_profile(self, subject_id: str) -> RiskProfile | None:
        """Return a snapshot of a student's risk profile, or None."""
        return self.profiles.get_profile(subject_id)

    def reset_student_risk_profile(self, subject_id: str) -> bool:
        """Clear a student's score and violations after review.

        Returns:
            True if the student had a profile.
        """
        reset = self.profiles.reset(subject_id)
        if reset:
            logger.info("risk_profile_reset", subject_id=subject_id)
        return reset

    def decay_student_risk_profile(
        self,
        subject_id: str,
        factor: float = 0.5,
    ) -> RiskProfile | None:
        """Scale down a student's cumulative score and re-derive the level.

        Args:
            subject_id: Student to decay.
            factor: Multiplier in [0, 1] applied to the cumulative score.

        Returns:
            Updated profile snapshot, or None if the student is unknown.

        Raises:
            ValueError: If factor is outside [0, 1].
        """
        return self.profiles.decay(subject_id, factor)

    # =========================================================================
    # Alerts
    # =========================================================================

    def get_alerts(
        self,
        subject_id: str | None = None,
        severity: Severity | str | None = None,
        acknowledged: bool | None = None,
        reason: str | None = None,
        since: datetime | str | None = None,
        limit: int | None = None,
    ) -> list[Alert]:
        """List alerts matching every given filter, newest first.

        Raises:
            ValueError: If severity is not a known severity.
        """
        alerts = self.alerts.list_alerts(
            subject_id=subject_id,
            severity=Severity(severity) if severity is not None else None,
            acknowledged=acknowledged,
            reason=reason,
            since=coerce_datetime(since),
        )
        return alerts[:limit] if limit is not None else alerts

    def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> bool:
        """Acknowledge an alert.

        Returns:
            False if the alert is unknown or was already acknowledged.
        """
        return self.alerts.acknowledge(alert_id, acknowledged_by)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_suspicious_activities(
        self,
        subject_id: str | None = None,
        risk_level: RiskLevel | str | None = None,
        since: datetime | str | None = None,
        limit: int | None = None,
        min_risk_level: RiskLevel | str | None = None,
    ) -> list[ActivityRecord]:
        """List retained suspicious activities, newest first.

        Args:
            subject_id: Only this student's activities.
            risk_level: Only activities whose resulting profile level was
                exactly this level.
            since: Only activities at or after this time.
            limit: Maximum number of records.
            min_risk_level: Only activities whose resulting profile level
                was at least this level.

        Raises:
            ValueError: If a level is not a known level.
        """
        exact = RiskLevel(risk_level) if risk_level is not None else None
        minimum = RiskLevel(min_risk_level) if min_risk_level is not None else None
        since_dt = coerce_datetime(since)

        if subject_id is not None:
            records = self.activity_log.history(subject_id, since=since_dt)
        else:
            records = self.activity_log.records(since=since_dt)

        result = [
            r
            for r in records
            if r.suspicious
            and (exact is None or r.risk_level == exact)
            and (minimum is None or (r.risk_level is not None and r.risk_level >= minimum))
        ]
        result.sort(key=lambda r: r.timestamp, reverse=True)
        return result[:limit] if limit is not None else result

    def get_session_summary(self, subject_id: str, session_id: str) -> SessionSummary | None:
        return self.activity_log.get_session(subject_id, session_id)

    def get_activity_stats(self) -> dict[str, Any]:
        """Aggregate statistics over the retained log.

        An empty monitor reports zeros rather than failing.
        """
        records = self.activity_log.records()
        total = len(records)
        activity_types = Counter({t.value: 0 for t in ActivityType})
        activity_types.update(r.activity_type.value for r in records)

        return {
            "total_activities": total,
            "unique_subjects": len({r.subject_id for r in records}),
            "average_risk_score": (
                round(sum(r.risk_score for r in records) / total, 2) if total else 0.0
            ),
            "flagged_activities": sum(1 for r in records if r.flagged),
            "suspicious_activities": sum(1 for r in records if r.suspicious),
            "rejected_activities": self._rejected_count,
            "activity_types": dict(activity_types),
            "risk_levels": self.profiles.level_distribution(),
            "active_sessions": self.activity_log.session_count,
            "active_alerts": self.alerts.active_count,
            "total_alerts": len(self.alerts),
        }

    def health_check(self) -> dict[str, Any]:
        """Report whether the monitor is accepting activities.

        ``status`` is ``healthy`` when the monitor accepts activities and
        has at least one pattern detector, otherwise ``degraded``.
        """
        healthy = self._accepting and bool(self.detectors)
        uptime = max(0, int((self._clock() - self._started_at).total_seconds()))
        return {
            "status": "healthy" if healthy else "degraded",
            "accepting_activities": self._accepting,
            "monitoring": {
                "active_subjects": len(self.profiles),
                "pattern_detectors": len(self.detectors),
                "retained_activities": len(self.activity_log),
                "active_alerts": self.alerts.active_count,
                "retention_scheduler": self._scheduler.is_running,
            },
            "patterns": [d.pattern_type.value for d in self.detectors],
            "last_sweep": self._last_sweep.to_dict() if self._last_sweep else None,
            "uptime": seconds_to_human(uptime),
        }

    # =========================================================================
    # Retention
    # =========================================================================

    def cleanup_old_data(self) -> SweepResult | None:
        """Evict data older than the retention window.

        Students with no retained activity left lose their profile and
        alerts. Only one sweep runs at a time; a concurrent call returns
        None immediately. Each student's stripe is held only while that
        student is pruned.

        Returns:
            SweepResult, or None if another sweep is in progress.
        """
        if not self._sweep_lock.acquire(blocking=False):
            logger.debug("retention_sweep_skipped", reason="already_running")
            return None

        try:
            cutoff = window_start(self._clock(), self.settings.retention_seconds)
            result = SweepResult(cutoff=cutoff)

            subject_ids = set(self.activity_log.subject_ids()) | set(self.profiles.subject_ids())
            for subject_id in subject_ids:
                with self._locks.for_subject(subject_id):
                    removed, emptied = self.activity_log.prune_subject(subject_id, cutoff)
                    result.activities_removed += removed
                    if emptied:
                        if self.profiles.remove(subject_id):
                            result.profiles_removed += 1
                        result.alerts_removed += self.alerts.remove_subject(subject_id)

            result.alerts_removed += self.alerts.prune(cutoff)
            result.sessions_removed = self.activity_log.prune_sessions(cutoff)
            self._last_sweep = result

            logger.info("retention_sweep_completed", **result.to_dict())
            return result
        finally:
            self._sweep_lock.release()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the background retention sweep."""
        self._accepting = True
        self._scheduler.start()

    def shutdown(self) -> None:
        """Stop the retention sweep and stop accepting activities."""
        self._accepting = False
        self._scheduler.stop()
        logger.info("activity_monitor_shutdown")


# Module-level singleton instance
_monitor: ActivityMonitor | None = None
_monitor_lock = threading.Lock()


def get_activity_monitor() -> ActivityMonitor:
    """Get the process-wide ActivityMonitor built from settings.

    Returns:
        The ActivityMonitor singleton instance.
    """
    global _monitor
    with _monitor_lock:
        if _monitor is None:
            _monitor = ActivityMonitor()
        return _monitor


def reset_activity_monitor() -> None:
    """Shut down and drop the singleton ActivityMonitor.

    This is primarily useful for testing.
    """
    global _monitor
    with _monitor_lock:
        if _monitor is not None:
            _monitor.shutdown()
        _monitor = None
