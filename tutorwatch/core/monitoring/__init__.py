# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity monitoring and risk scoring engine.

This package watches what students do in tutor sessions, keeps a risk
profile per student, detects abusive patterns and raises alerts for
teachers and administrators.

Components:
- ActivityValidator: Turns raw activity mappings into ActivityRecords
- RiskScorer: Risk contribution of a single activity
- RiskProfileStore: Per-student cumulative risk and level
- Pattern detectors: Repeated violations, rapid-fire, system abuse
- AlertEngine: Throttled alerts with acknowledgement
- ActivityLog: Bounded history with retention
- ActivityMonitor: The service wiring all of the above

Example:
    >>> from tutorwatch.core.monitoring import get_activity_monitor
    >>> monitor = get_activity_monitor()
    >>> result = monitor.log_activity({
    ...     "subject_id": "student-1",
    ...     "session_id": "sess-1",
    ...     "activity_type": "learning_interaction",
    ... })
    >>> result.logged
    True
"""

from tutorwatch.core.monitoring.activity_log import ActivityLog
from tutorwatch.core.monitoring.alerts import AlertEngine
from tutorwatch.core.monitoring.constants import (
    ActivityType,
    PatternType,
    RiskLevel,
    Severity,
)
from tutorwatch.core.monitoring.detectors import BasePatternDetector, default_detectors
from tutorwatch.core.monitoring.exceptions import (
    ActivityMonitorError,
    InternalStateError,
    InvalidActivityError,
    MissingFieldError,
    UnknownActivityTypeError,
    ValidationError,
)
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
from tutorwatch.core.monitoring.service import (
    ActivityMonitor,
    RetentionScheduler,
    get_activity_monitor,
    reset_activity_monitor,
)
from tutorwatch.core.monitoring.thresholds import (
    CountRule,
    MonitoringThresholds,
    PatternThresholds,
    RiskThresholds,
    get_thresholds,
    reload_thresholds,
)
from tutorwatch.core.monitoring.validator import ActivityValidator

__all__ = [
    # Service
    "ActivityMonitor",
    "RetentionScheduler",
    "get_activity_monitor",
    "reset_activity_monitor",
    # Components
    "ActivityValidator",
    "RiskScorer",
    "RiskProfileStore",
    "AlertEngine",
    "ActivityLog",
    "BasePatternDetector",
    "default_detectors",
    # Enums
    "ActivityType",
    "PatternType",
    "RiskLevel",
    "Severity",
    # Models
    "ActivityRecord",
    "Alert",
    "LogResult",
    "PatternMatch",
    "RiskLevelTransition",
    "RiskProfile",
    "SessionSummary",
    "SweepResult",
    # Thresholds
    "CountRule",
    "MonitoringThresholds",
    "PatternThresholds",
    "RiskThresholds",
    "get_thresholds",
    "reload_thresholds",
    # Exceptions
    "ActivityMonitorError",
    "InternalStateError",
    "InvalidActivityError",
    "MissingFieldError",
    "UnknownActivityTypeError",
    "ValidationError",
]
