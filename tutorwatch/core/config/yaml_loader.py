# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML configuration file loader utilities.

Threshold files for the monitoring heuristics are plain YAML. Operators
usually override a handful of numbers, so a partial file is deep merged
over the built-in defaults instead of replacing them.

Example:
    >>> from pathlib import Path
    >>> from tutorwatch.core.config.yaml_loader import deep_merge, load_yaml_section
    >>> path = Path("config/monitoring/thresholds.yaml")
    >>> overrides = load_yaml_section(path, "monitoring")
    >>> merged = deep_merge({"risk": {"high_total": 30}}, overrides)
"""

from pathlib import Path
from typing import Any

import yaml


class YAMLLoadError(Exception):
    """Raised when YAML file cannot be loaded or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize YAMLLoadError.

        Args:
            path: Path to the YAML file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file to load.

    Returns:
        Dictionary containing the parsed YAML contents.
        Empty dict if file is empty.

    Raises:
        YAMLLoadError: If the file doesn't exist, cannot be read,
            or contains invalid YAML.
    """
    if not path.exists():
        raise YAMLLoadError(path, "File does not exist")

    if not path.is_file():
        raise YAMLLoadError(path, "Path is not a file")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise YAMLLoadError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )

    return parsed


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Nested dictionaries are merged recursively. For non-dict values,
    the override value replaces the base value.

    Args:
        base: The base dictionary to merge into.
        override: The dictionary whose values take precedence.

    Returns:
        A new dictionary containing the merged result.
        Neither input dictionary is modified.

    Example:
        >>> base = {"risk": {"low": 1, "high": 15}}
        >>> deep_merge(base, {"risk": {"high": 20}})
        {"risk": {"low": 1, "high": 20}}
    """
    result: dict[str, Any] = base.copy()

    for key, override_value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(override_value, dict)
        ):
            result[key] = deep_merge(result[key], override_value)
        else:
            result[key] = override_value

    return result


def load_yaml_section(path: Path | str, section: str) -> dict[str, Any]:
    """Load one top-level section of a YAML file.

    Args:
        path: Path to the YAML file.
        section: Top-level key to extract (e.g. "monitoring").

    Returns:
        The section mapping, or an empty dict if the key is absent.

    Raises:
        YAMLLoadError: If the file cannot be loaded or the section is
            not a mapping.
    """
    path = Path(path)
    value = load_yaml(path).get(section)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise YAMLLoadError(
            path, f"Section '{section}' must be a mapping, got {type(value).__name__}"
        )
    return value
