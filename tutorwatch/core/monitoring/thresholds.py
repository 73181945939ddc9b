# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scoring and pattern threshold configuration.

Every tunable number used by the scorer, the profile store and the
pattern detectors lives here. Defaults match the product policy; a YAML
file can override any subset of them.

Usage:
    from tutorwatch.core.monitoring.thresholds import get_thresholds

    thresholds = get_thresholds()
    print(thresholds.patterns.jailbreak.threshold)

    # Tests build their own instances instead
    strict = PatternThresholds(jailbreak=CountRule(threshold=2, severity=Severity.HIGH))
"""

import logging
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

from tutorwatch.core.config.yaml_loader import YAMLLoadError, deep_merge, load_yaml_section
from tutorwatch.core.monitoring.constants import Severity

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS_FILE = (
    Path(__file__).parents[3] / "config" / "monitoring" / "thresholds.yaml"
)


@dataclass
class RiskThresholds:
    """Scorer and profile-level thresholds.

    Attributes:
        severity_scores: Base contribution per severity.
        violation_modifier: Fraction of base added for violation types.
        repeat_modifier: Fraction of base added for confirmed repeats.
        abuse_floor: Minimum contribution of max-confidence abuse signals.
        critical_single_contribution: One contribution at or above this
            makes the profile critical.
        critical_total: Cumulative score for critical.
        critical_violations: Violation count for critical.
        high_total: Cumulative score for high.
        high_violations: Violation count for high.
        medium_total: Cumulative score for medium.
        medium_violations: Violation count for medium.
        suspicious_contribution: Contribution at or above this lists the
            activity as suspicious.
    """

    severity_scores: dict[str, float] = field(
        default_factory=lambda: {"low": 1.0, "medium": 5.0, "high": 15.0, "critical": 25.0}
    )
    violation_modifier: float = 0.5
    repeat_modifier: float = 0.5
    abuse_floor: float = 25.0
    critical_single_contribution: float = 25.0
    critical_total: float = 60.0
    critical_violations: int = 5
    high_total: float = 30.0
    high_violations: int = 3
    medium_total: float = 10.0
    medium_violations: int = 1
    suspicious_contribution: float = 5.0

    def base_score(self, severity: Severity) -> float:
        return float(self.severity_scores.get(severity.value, self.severity_scores["low"]))


@dataclass
class CountRule:
    """Count threshold of one detector.

    Attributes:
        threshold: Matching activities needed (inclusive of the new one).
        severity: Severity of the emitted pattern.
        window_seconds: Trailing window; None uses the full history window.
    """

    threshold: int
    severity: Severity
    window_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {self.threshold}")
        if self.window_seconds is not None and self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {self.window_seconds}")


@dataclass
class PatternThresholds:
    """Detector thresholds.

    Off-hours are expressed as UTC hours: activity at or after
    ``off_hours_start`` or before ``off_hours_end`` counts as off-hours.
    """

    jailbreak: CountRule = field(
        default_factory=lambda: CountRule(threshold=4, severity=Severity.HIGH)
    )
    inappropriate_content: CountRule = field(
        default_factory=lambda: CountRule(threshold=3, severity=Severity.HIGH)
    )
    educational_bypass: CountRule = field(
        default_factory=lambda: CountRule(threshold=6, severity=Severity.MEDIUM)
    )
    rapid_fire: CountRule = field(
        default_factory=lambda: CountRule(threshold=10, severity=Severity.MEDIUM, window_seconds=60)
    )
    excessive_requests: CountRule = field(
        default_factory=lambda: CountRule(threshold=50, severity=Severity.MEDIUM, window_seconds=600)
    )
    off_hours: CountRule = field(
        default_factory=lambda: CountRule(threshold=20, severity=Severity.LOW, window_seconds=3600)
    )
    escalating_severity: CountRule = field(
        default_factory=lambda: CountRule(threshold=2, severity=Severity.HIGH, window_seconds=900)
    )
    authentication_anomaly: CountRule = field(
        default_factory=lambda: CountRule(threshold=1, severity=Severity.CRITICAL)
    )
    privilege_escalation: CountRule = field(
        default_factory=lambda: CountRule(threshold=1, severity=Severity.CRITICAL)
    )
    session_manipulation: CountRule = field(
        default_factory=lambda: CountRule(threshold=1, severity=Severity.HIGH)
    )
    repeated_violations: CountRule = field(
        default_factory=lambda: CountRule(threshold=3, severity=Severity.HIGH, window_seconds=1800)
    )
    off_hours_start: int = 22
    off_hours_end: int = 6
    escalating_min_severity: Severity = Severity.HIGH
    # Opt-in detector
    repeated_violations_enabled: bool = False

    def is_off_hours(self, hour: int) -> bool:
        if self.off_hours_start > self.off_hours_end:
            return hour >= self.off_hours_start or hour < self.off_hours_end
        return self.off_hours_start <= hour < self.off_hours_end


@dataclass
class MonitoringThresholds:
    """Complete heuristic configuration injected into the monitor."""

    risk: RiskThresholds = field(default_factory=RiskThresholds)
    patterns: PatternThresholds = field(default_factory=PatternThresholds)


def _default_data() -> dict[str, Any]:
    defaults = MonitoringThresholds()
    data = asdict(defaults)
    # asdict keeps enum members; normalise to plain values for merging
    for rule in data["patterns"].values():
        if isinstance(rule, dict):
            rule["severity"] = Severity(rule["severity"]).value
    data["patterns"]["escalating_min_severity"] = defaults.patterns.escalating_min_severity.value
    return data


def _parse_count_rule(data: dict[str, Any]) -> CountRule:
    window = data.get("window_seconds")
    return CountRule(
        threshold=int(data["threshold"]),
        severity=Severity(str(data["severity"]).lower()),
        window_seconds=float(window) if window is not None else None,
    )


def _parse_risk_thresholds(data: dict[str, Any]) -> RiskThresholds:
    return RiskThresholds(
        severity_scores={str(k): float(v) for k, v in data["severity_scores"].items()},
        violation_modifier=float(data["violation_modifier"]),
        repeat_modifier=float(data["repeat_modifier"]),
        abuse_floor=float(data["abuse_floor"]),
        critical_single_contribution=float(data["critical_single_contribution"]),
        critical_total=float(data["critical_total"]),
        critical_violations=int(data["critical_violations"]),
        high_total=float(data["high_total"]),
        high_violations=int(data["high_violations"]),
        medium_total=float(data["medium_total"]),
        medium_violations=int(data["medium_violations"]),
        suspicious_contribution=float(data["suspicious_contribution"]),
    )


def _parse_pattern_thresholds(data: dict[str, Any]) -> PatternThresholds:
    rules = {
        name: _parse_count_rule(value)
        for name, value in data.items()
        if isinstance(value, dict)
    }
    return PatternThresholds(
        **rules,
        off_hours_start=int(data["off_hours_start"]),
        off_hours_end=int(data["off_hours_end"]),
        escalating_min_severity=Severity(str(data["escalating_min_severity"]).lower()),
        repeated_violations_enabled=bool(data["repeated_violations_enabled"]),
    )


def parse_thresholds(overrides: dict[str, Any]) -> MonitoringThresholds:
    """Build thresholds from a (possibly partial) override mapping.

    Args:
        overrides: Mapping with optional ``risk`` and ``patterns`` sections.

    Returns:
        MonitoringThresholds with overrides merged over defaults.

    Raises:
        ValueError: If a value has the wrong type or is out of range.
        TypeError: If an unknown detector rule name is given.
    """
    merged = deep_merge(_default_data(), overrides)
    return MonitoringThresholds(
        risk=_parse_risk_thresholds(merged["risk"]),
        patterns=_parse_pattern_thresholds(merged["patterns"]),
    )


@lru_cache(maxsize=1)
def load_thresholds(path: str | None = None) -> MonitoringThresholds:
    """Load thresholds from a YAML file.

    Uses LRU cache to avoid reloading on every access.
    Call `load_thresholds.cache_clear()` to reload.

    A missing or unreadable file falls back to defaults with a warning;
    a readable file with invalid values raises.

    Args:
        path: Optional file override (as string for caching).

    Returns:
        MonitoringThresholds instance.
    """
    file_path = Path(path) if path else DEFAULT_THRESHOLDS_FILE
    logger.debug("Loading monitoring thresholds from: %s", file_path)

    try:
        overrides = load_yaml_section(file_path, "monitoring")
    except YAMLLoadError as e:
        logger.warning("Failed to load thresholds config: %s", e)
        overrides = {}

    thresholds = parse_thresholds(overrides)

    logger.info(
        "Loaded monitoring thresholds: jailbreak=%d rapid_fire=%d/%ss",
        thresholds.patterns.jailbreak.threshold,
        thresholds.patterns.rapid_fire.threshold,
        thresholds.patterns.rapid_fire.window_seconds,
    )

    return thresholds


def get_thresholds(path: Path | str | None = None) -> MonitoringThresholds:
    """Get the cached threshold configuration.

    Args:
        path: Optional YAML file; defaults to the bundled file.

    Returns:
        MonitoringThresholds instance.
    """
    return load_thresholds(str(path) if path else None)


def reload_thresholds(path: Path | str | None = None) -> MonitoringThresholds:
    """Force reload of threshold configuration.

    Returns:
        Fresh MonitoringThresholds instance.
    """
    load_thresholds.cache_clear()
    return get_thresholds(path)
