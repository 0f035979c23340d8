"""
Tests for configuration module.
"""

from __future__ import annotations

import os
import sys
from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from remote_caching.config import (
    IN_MEMORY_DATABASE_PATH,
    Settings,
    clear_settings_cache,
    default_database_path,
    get_in_memory_database_path,
    get_settings,
)


class TestSettings:
    """Tests for Settings loading and validation."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings correctly loads from environment variables."""
        settings = get_settings()

        assert settings.DEFAULT_CACHE_DURATION_SECONDS == 120
        assert settings.default_cache_duration == timedelta(seconds=120)
        assert settings.verbose_mode is True
        assert settings.database_path == IN_MEMORY_DATABASE_PATH
        assert settings.is_in_memory
        assert settings.LOG_LEVEL == "DEBUG"

    def test_defaults(self) -> None:
        """Test default values when nothing is configured."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.default_cache_duration == timedelta(hours=1)
        assert settings.verbose_mode is False
        assert settings.DATABASE_PATH is None
        assert settings.LOG_LEVEL == "INFO"

    def test_verbose_defaults_on_in_dev_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that python -X dev turns verbose mode on unless configured."""
        monkeypatch.setattr(sys, "flags", SimpleNamespace(dev_mode=True))

        with patch.dict(os.environ, {}, clear=True):
            assert Settings(_env_file=None).verbose_mode is True
            assert Settings(_env_file=None, VERBOSE_MODE=False).verbose_mode is False

    def test_blank_database_path_uses_default(self) -> None:
        """Test that an empty path falls back to the platform default."""
        settings = Settings(_env_file=None, DATABASE_PATH="  ")

        assert settings.DATABASE_PATH is None
        assert settings.database_path == str(default_database_path())

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_non_positive_duration_rejected(self, value: str) -> None:
        """Test that the default duration must be positive."""
        with patch.dict(os.environ, {"REMOTE_CACHING_DEFAULT_CACHE_DURATION_SECONDS": value}):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_invalid_log_level_rejected(self) -> None:
        """Test that unknown log levels are rejected."""
        with patch.dict(os.environ, {"REMOTE_CACHING_LOG_LEVEL": "LOUD"}):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_settings_cache(self, mock_env_vars: dict[str, str]) -> None:
        """Test that get_settings() is cached until cleared."""
        first = get_settings()
        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first

    def test_display(self, mock_env_vars: dict[str, str]) -> None:
        """Test the display mapping used by the CLI."""
        display = get_settings().display()

        assert display["DATABASE_PATH"] == IN_MEMORY_DATABASE_PATH
        assert display["VERBOSE_MODE"] is True
        assert display["LOG_FILE"] is None


class TestDatabasePaths:
    """Tests for database path helpers."""

    def test_in_memory_sentinel(self) -> None:
        """Test the in-memory path helper."""
        assert get_in_memory_database_path() == ":memory:"

    @pytest.mark.skipif(sys.platform in ("darwin", "win32"), reason="XDG layout")
    def test_default_path_honours_xdg(self, temp_dir: Path) -> None:
        """Test that XDG_CACHE_HOME is used on Linux."""
        with patch.dict(os.environ, {"XDG_CACHE_HOME": str(temp_dir)}):
            path = default_database_path()

        assert path == temp_dir / "remote_caching" / "remote_caching.db"

    def test_default_path_filename(self) -> None:
        """Test the database file name."""
        assert default_database_path().name == "remote_caching.db"
