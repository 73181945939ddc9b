# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables with sensible defaults.
The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Scoring and pattern heuristics are not environment settings; they live in
the thresholds YAML file referenced by MonitoringSettings.thresholds_file.

Example:
    >>> from tutorwatch.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.monitoring.throttle_window_seconds
    300
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MonitoringSettings(BaseSettings):
    """Runtime configuration for the activity monitor.

    Attributes:
        throttle_window_seconds: Duplicate alerts for the same student and
            reason are suppressed within this span.
        history_window_seconds: How far back pattern detectors look.
        max_history_per_subject: Cap on retained records per student.
        retention_seconds: Records older than this are evicted by the sweep.
        cleanup_interval_seconds: Period of the background retention sweep.
        lock_stripes: Number of lock shards used to serialize per-student
            updates.
        thresholds_file: Optional YAML file overriding scoring and pattern
            thresholds.
    """

    model_config = SettingsConfigDict(
        env_prefix="ACTIVITY_MONITOR_",
        extra="ignore",
    )

    throttle_window_seconds: float = Field(default=300.0, gt=0)
    history_window_seconds: float = Field(default=86400.0, gt=0)
    max_history_per_subject: int = Field(default=1000, ge=1)
    retention_seconds: float = Field(default=604800.0, gt=0)
    cleanup_interval_seconds: float = Field(default=300.0, gt=0)
    lock_stripes: int = Field(default=64, ge=1)
    thresholds_file: Path | None = None


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        monitoring: Activity monitor settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
