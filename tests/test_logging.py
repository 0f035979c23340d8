"""
Tests for structured logging.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from remote_caching.logging import (
    JSONFormatter,
    cache_context,
    enable_verbose_logging,
    get_cache_key,
    get_logger,
    get_operation,
    reset_logging,
    setup_logging,
)


class TestCacheContext:
    """Tests for scoped logging context."""

    def test_context_is_scoped(self) -> None:
        """Test that values are restored on exit."""
        assert get_cache_key() is None

        with cache_context(cache_key="outer", operation="call"):
            assert get_cache_key() == "outer"
            with cache_context(cache_key="inner"):
                assert get_cache_key() == "inner"
                assert get_operation() == "call"
            assert get_cache_key() == "outer"

        assert get_cache_key() is None
        assert get_operation() is None


class TestJSONFormatter:
    """Tests for JSON-lines formatting."""

    def test_format_includes_context_and_extra(self) -> None:
        """Test that context variables and extras are emitted."""
        record = logging.LogRecord(
            name="remote_caching.engine",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Cache hit",
            args=(),
            exc_info=None,
        )
        record.extra = {"size_bytes": 12}

        with cache_context(cache_key="user:1", operation="call"):
            line = JSONFormatter().format(record)

        data = json.loads(line)
        assert data["message"] == "Cache hit"
        assert data["level"] == "INFO"
        assert data["cache_key"] == "user:1"
        assert data["operation"] == "call"
        assert data["extra"] == {"size_bytes": 12}


class TestSetupLogging:
    """Tests for logger configuration."""

    def test_get_logger_namespacing(self) -> None:
        """Test that loggers live under the package namespace."""
        assert get_logger("remote_caching.store").name == "remote_caching.store"
        assert get_logger("myapp").name == "remote_caching.myapp"

    def test_log_file_receives_json(self, temp_dir: Path) -> None:
        """Test that setup_logging writes JSON lines to the log file."""
        log_file = temp_dir / "logs" / "cache.jsonl"
        setup_logging(log_level="DEBUG", log_file=log_file, console_output=False)
        try:
            with cache_context(cache_key="k"):
                get_logger("tests").info("Data cached", size_bytes=3)

            for handler in logging.getLogger("remote_caching").handlers:
                handler.flush()

            lines = log_file.read_text(encoding="utf-8").splitlines()
            data = json.loads(lines[-1])
            assert data["message"] == "Data cached"
            assert data["cache_key"] == "k"
            assert data["extra"]["size_bytes"] == 3
        finally:
            for handler in logging.getLogger("remote_caching").handlers:
                handler.close()
            reset_logging()

    def test_get_logger_leaves_host_configuration_alone(self) -> None:
        """Test that importing library loggers installs no handlers."""
        reset_logging()

        get_logger("remote_caching.engine").warning("Something happened")

        package_logger = logging.getLogger("remote_caching")
        assert package_logger.handlers == []
        assert package_logger.propagate is True

    def test_setup_then_reset(self) -> None:
        """Test that reset_logging() undoes setup_logging()."""
        setup_logging(console_output=True)
        package_logger = logging.getLogger("remote_caching")
        assert package_logger.propagate is False
        assert len(package_logger.handlers) == 1

        reset_logging()

        assert package_logger.handlers == []
        assert package_logger.propagate is True
        assert package_logger.level == logging.NOTSET


class TestVerboseLogging:
    """Tests for enable_verbose_logging()."""

    def test_uses_host_handlers_when_configured(self) -> None:
        """Test that only the level changes when the host has handlers."""
        reset_logging()
        root = logging.getLogger()
        handler = logging.NullHandler()
        root.addHandler(handler)
        try:
            enable_verbose_logging()

            package_logger = logging.getLogger("remote_caching")
            assert package_logger.getEffectiveLevel() == logging.INFO
            assert package_logger.handlers == []
            assert package_logger.propagate is True
        finally:
            root.removeHandler(handler)

    def test_installs_console_handler_when_unconfigured(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that traces get a console handler when nothing else would show them."""
        reset_logging()
        monkeypatch.setattr(logging.getLogger(), "handlers", [])

        enable_verbose_logging()

        package_logger = logging.getLogger("remote_caching")
        assert package_logger.getEffectiveLevel() == logging.INFO
        assert len(package_logger.handlers) == 1

    def test_keeps_lower_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an existing DEBUG level is not raised to INFO."""
        reset_logging()
        monkeypatch.setattr(logging.getLogger(), "handlers", [logging.NullHandler()])
        package_logger = logging.getLogger("remote_caching")
        package_logger.setLevel(logging.DEBUG)

        enable_verbose_logging()

        assert package_logger.level == logging.DEBUG
