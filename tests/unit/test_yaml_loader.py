# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for YAML loader utilities."""

from pathlib import Path

import pytest

from tutorwatch.core.config.yaml_loader import (
    YAMLLoadError,
    deep_merge,
    load_yaml,
    load_yaml_section,
)


class TestLoadYaml:
    """Tests for load_yaml function."""

    def test_load_valid_yaml_file(self, tmp_path: Path) -> None:
        """Test loading a valid YAML file."""
        yaml_file = tmp_path / "thresholds.yaml"
        yaml_file.write_text("monitoring:\n  risk:\n    high_total: 40\n")

        result = load_yaml(yaml_file)

        assert result == {"monitoring": {"risk": {"high_total": 40}}}

    def test_load_empty_yaml_file_returns_empty_dict(self, tmp_path: Path) -> None:
        """Test that empty YAML files return empty dict."""
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("# only a comment\n")

        assert load_yaml(yaml_file) == {}

    def test_load_yaml_with_list_root_raises_error(self, tmp_path: Path) -> None:
        """Test that YAML files with list root raise error."""
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- jailbreak\n- rapid_fire\n")

        with pytest.raises(YAMLLoadError) as exc_info:
            load_yaml(yaml_file)

        assert "YAML root must be a mapping" in str(exc_info.value)

    def test_load_nonexistent_file_raises_error(self, tmp_path: Path) -> None:
        """Test that loading non-existent file raises error."""
        with pytest.raises(YAMLLoadError) as exc_info:
            load_yaml(tmp_path / "missing.yaml")

        assert "File does not exist" in str(exc_info.value)

    def test_load_directory_instead_of_file_raises_error(self, tmp_path: Path) -> None:
        """Test that passing a directory raises error."""
        with pytest.raises(YAMLLoadError) as exc_info:
            load_yaml(tmp_path)

        assert "Path is not a file" in str(exc_info.value)

    def test_load_invalid_yaml_syntax_raises_error(self, tmp_path: Path) -> None:
        """Test that invalid YAML syntax raises error."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("risk: [unclosed\n")

        with pytest.raises(YAMLLoadError) as exc_info:
            load_yaml(yaml_file)

        assert "Invalid YAML syntax" in str(exc_info.value)


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_nested_dicts_are_merged_recursively(self) -> None:
        """Test that nested dictionaries are merged."""
        base = {"risk": {"high_total": 30, "medium_total": 10}}
        override = {"risk": {"high_total": 40}}

        assert deep_merge(base, override) == {"risk": {"high_total": 40, "medium_total": 10}}

    def test_non_dict_replaces_dict(self) -> None:
        """Test that non-dict values replace dict values."""
        base = {"jailbreak": {"threshold": 4}}
        override = {"jailbreak": None}

        assert deep_merge(base, override) == {"jailbreak": None}

    def test_original_dicts_not_modified(self) -> None:
        """Test that original dictionaries are not modified."""
        base = {"risk": {"high_total": 30}}
        override = {"risk": {"high_total": 40}}

        deep_merge(base, override)

        assert base == {"risk": {"high_total": 30}}
        assert override == {"risk": {"high_total": 40}}

    def test_merge_empty_override(self) -> None:
        """Test merging an empty override."""
        base = {"patterns": {"rapid_fire": {"threshold": 10}}}

        assert deep_merge(base, {}) == base


class TestLoadYamlSection:
    """Tests for load_yaml_section function."""

    def test_returns_named_section(self, tmp_path: Path) -> None:
        """Test that only the requested section is returned."""
        yaml_file = tmp_path / "thresholds.yaml"
        yaml_file.write_text("monitoring:\n  risk:\n    high_total: 40\nother: 1\n")

        assert load_yaml_section(yaml_file, "monitoring") == {"risk": {"high_total": 40}}

    def test_missing_section_returns_empty_dict(self, tmp_path: Path) -> None:
        """Test that an absent section yields an empty dict."""
        yaml_file = tmp_path / "thresholds.yaml"
        yaml_file.write_text("other: 1\n")

        assert load_yaml_section(str(yaml_file), "monitoring") == {}

    def test_non_mapping_section_raises(self, tmp_path: Path) -> None:
        """Test that a scalar section is rejected."""
        yaml_file = tmp_path / "thresholds.yaml"
        yaml_file.write_text("monitoring: 5\n")

        with pytest.raises(YAMLLoadError, match="must be a mapping"):
            load_yaml_section(yaml_file, "monitoring")


class TestYAMLLoadError:
    """Tests for YAMLLoadError exception."""

    def test_error_contains_path_and_reason(self) -> None:
        """Test that error message contains path and reason."""
        path = Path("/config/monitoring/thresholds.yaml")
        error = YAMLLoadError(path, "Something went wrong")

        assert error.path == path
        assert error.reason == "Something went wrong"
        assert "/config/monitoring/thresholds.yaml" in str(error)
        assert "Something went wrong" in str(error)
