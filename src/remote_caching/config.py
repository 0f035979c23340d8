"""
Configuration management using pydantic-settings.

Loads configuration from REMOTE_CACHING_* environment variables and .env files.
Values passed explicitly to RemoteCaching.init() take precedence over these.
"""

from __future__ import annotations

import os
import sys
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IN_MEMORY_DATABASE_PATH = ":memory:"
DATABASE_FILENAME = "remote_caching.db"


def get_in_memory_database_path() -> str:
    """Return the sentinel path that opens a non-persistent in-memory database.

    In-memory databases are lost when the cache is disposed. Useful for tests
    and for short-lived processes that only want per-run deduplication.
    """
    return IN_MEMORY_DATABASE_PATH


def default_database_path() -> Path:
    """Get the platform's conventional cache location for the database file.

    Returns:
        ~/Library/Caches/remote_caching/remote_caching.db on macOS,
        %LOCALAPPDATA%/remote_caching/remote_caching.db on Windows,
        $XDG_CACHE_HOME (or ~/.cache)/remote_caching/remote_caching.db elsewhere.
    """
    if sys.platform == "darwin":
        base = Path.home() / "Library" / "Caches"
    elif sys.platform == "win32":
        local_app_data = os.environ.get("LOCALAPPDATA")
        base = Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
    else:
        xdg_cache = os.environ.get("XDG_CACHE_HOME")
        base = Path(xdg_cache) if xdg_cache else Path.home() / ".cache"
    return base / "remote_caching" / DATABASE_FILENAME


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    Optional:
        REMOTE_CACHING_DEFAULT_CACHE_DURATION_SECONDS: Default entry lifetime
        REMOTE_CACHING_VERBOSE_MODE: Log hits, misses and writes
        REMOTE_CACHING_DATABASE_PATH: SQLite file path, or ":memory:"
        REMOTE_CACHING_LOG_LEVEL: Logging level
        REMOTE_CACHING_LOG_FILE: JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_CACHING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DEFAULT_CACHE_DURATION_SECONDS: float = Field(
        default=3600.0, gt=0.0, description="Default lifetime of a cache entry in seconds"
    )
    VERBOSE_MODE: bool = Field(
        default_factory=lambda: sys.flags.dev_mode,
        description="Log cache hits, misses and writes (defaults on under python -X dev)",
    )
    DATABASE_PATH: str | None = Field(
        default=None,
        description="Path to the SQLite database, ':memory:' for an ephemeral cache",
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("DATABASE_PATH")
    @classmethod
    def validate_database_path(cls, v: str | None) -> str | None:
        """Treat a blank path as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def default_cache_duration(self) -> timedelta:
        """Get the default cache duration as a timedelta."""
        return timedelta(seconds=self.DEFAULT_CACHE_DURATION_SECONDS)

    @property
    def verbose_mode(self) -> bool:
        """Get verbose mode (lowercase alias)."""
        return self.VERBOSE_MODE

    @property
    def database_path(self) -> str:
        """Get the configured database path, falling back to the platform default."""
        if self.DATABASE_PATH:
            return self.DATABASE_PATH
        return str(default_database_path())

    @property
    def is_in_memory(self) -> bool:
        """Whether the configured database is ephemeral."""
        return self.database_path == IN_MEMORY_DATABASE_PATH

    def display(self) -> dict[str, str | float | bool | None]:
        """Return settings for display."""
        return {
            "DEFAULT_CACHE_DURATION_SECONDS": self.DEFAULT_CACHE_DURATION_SECONDS,
            "VERBOSE_MODE": self.VERBOSE_MODE,
            "DATABASE_PATH": self.database_path,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
