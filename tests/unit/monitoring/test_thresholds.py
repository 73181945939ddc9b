# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for threshold configuration."""

from collections.abc import Generator
from pathlib import Path

import pytest

from tutorwatch.core.monitoring.constants import Severity
from tutorwatch.core.monitoring.thresholds import (
    DEFAULT_THRESHOLDS_FILE,
    CountRule,
    MonitoringThresholds,
    get_thresholds,
    load_thresholds,
    parse_thresholds,
    reload_thresholds,
)


@pytest.fixture(autouse=True)
def _clear_thresholds_cache() -> Generator[None, None, None]:
    load_thresholds.cache_clear()
    yield
    load_thresholds.cache_clear()


class TestParseThresholds:
    """Tests for parse_thresholds."""

    def test_empty_overrides_give_defaults(self) -> None:
        """Test that no overrides equals the built-in defaults."""
        assert parse_thresholds({}) == MonitoringThresholds()

    def test_partial_override(self) -> None:
        """Test that a single value can be overridden."""
        thresholds = parse_thresholds(
            {"patterns": {"jailbreak": {"threshold": 2}}, "risk": {"high_total": 40}}
        )

        assert thresholds.patterns.jailbreak.threshold == 2
        assert thresholds.patterns.jailbreak.severity == Severity.HIGH
        assert thresholds.patterns.rapid_fire.threshold == 10
        assert thresholds.risk.high_total == 40
        assert thresholds.risk.severity_scores["critical"] == 25

    def test_enable_repeated_violations(self) -> None:
        """Test that the opt-in detector can be switched on from config."""
        thresholds = parse_thresholds({"patterns": {"repeated_violations_enabled": True}})

        assert thresholds.patterns.repeated_violations_enabled is True
        assert thresholds.patterns.repeated_violations.threshold == 3
        assert MonitoringThresholds().patterns.repeated_violations_enabled is False

    def test_invalid_threshold(self) -> None:
        """Test that a zero threshold is rejected."""
        with pytest.raises(ValueError):
            parse_thresholds({"patterns": {"rapid_fire": {"threshold": 0}}})

    def test_unknown_rule(self) -> None:
        """Test that an unknown detector rule is rejected."""
        with pytest.raises(TypeError):
            parse_thresholds({"patterns": {"typo_detector": {"threshold": 1, "severity": "low"}}})

    def test_count_rule_window_must_be_positive(self) -> None:
        """Test CountRule validation."""
        with pytest.raises(ValueError):
            CountRule(threshold=1, severity=Severity.LOW, window_seconds=0)


class TestLoadThresholds:
    """Tests for loading thresholds from YAML."""

    def test_bundled_file_matches_defaults(self) -> None:
        """Test that the shipped YAML restates the defaults."""
        assert DEFAULT_THRESHOLDS_FILE.exists()
        assert get_thresholds() == MonitoringThresholds()

    def test_override_file(self, tmp_path: Path) -> None:
        """Test loading a partial override file."""
        yaml_file = tmp_path / "thresholds.yaml"
        yaml_file.write_text(
            "monitoring:\n"
            "  patterns:\n"
            "    rapid_fire:\n"
            "      threshold: 5\n"
            "      window_seconds: 30\n"
        )

        thresholds = get_thresholds(yaml_file)

        assert thresholds.patterns.rapid_fire.threshold == 5
        assert thresholds.patterns.rapid_fire.window_seconds == 30
        assert thresholds.patterns.jailbreak.threshold == 4

    def test_missing_file_falls_back_to_defaults(self, tmp_path: Path) -> None:
        """Test that a missing file is not fatal."""
        assert get_thresholds(tmp_path / "missing.yaml") == MonitoringThresholds()

    def test_cached_until_reload(self, tmp_path: Path) -> None:
        """Test that thresholds are cached and reload re-reads the file."""
        yaml_file = tmp_path / "thresholds.yaml"
        yaml_file.write_text("monitoring:\n  risk:\n    medium_total: 12\n")
        first = get_thresholds(yaml_file)

        yaml_file.write_text("monitoring:\n  risk:\n    medium_total: 14\n")

        assert get_thresholds(yaml_file) is first
        assert reload_thresholds(yaml_file).risk.medium_total == 14
