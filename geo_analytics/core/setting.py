"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Both database paths default to files in the working directory
- Library users may skip this module entirely and pass paths explicitly
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["CountingMode", "Settings", "settings"]


class CountingMode(str, Enum):
    """
    How a resolved lookup is counted.

    - best_effort: dispatch the increment and return the country code right
      away; a failed increment is logged and dropped
    - wait: wait for the increment to be persisted before returning; a failed
      increment is still only logged
    """
    best_effort = "best_effort"
    wait = "wait"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Configuration
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level for the geo_analytics logger"
    )

    # Geo Database Configuration
    GEOIP_COUNTRY_DB_PATH: str = Field(
        default="./GeoLite2-Country.mmdb",
        description="Path to the MaxMind country database (.mmdb)"
    )

    # Analytics Database Configuration
    ANALYTICS_DB_PATH: str = Field(
        default="./analytics.db",
        description="Path to the SQLite file holding per-country counts (created if absent)"
    )
    COUNTING_MODE: CountingMode = Field(
        default=CountingMode.best_effort,
        description="best_effort (fire-and-forget) or wait (persist before returning)"
    )


settings = Settings()
