"""
Pytest configuration and fixtures for remote caching tests.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import patch

import pytest

from remote_caching.config import (
    IN_MEMORY_DATABASE_PATH,
    Settings,
    clear_settings_cache,
)
from remote_caching.engine import RemoteCaching
from remote_caching.logging import ROOT_LOGGER_NAME, reset_logging


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "REMOTE_CACHING_DEFAULT_CACHE_DURATION_SECONDS": "120",
        "REMOTE_CACHING_VERBOSE_MODE": "true",
        "REMOTE_CACHING_DATABASE_PATH": IN_MEMORY_DATABASE_PATH,
        "REMOTE_CACHING_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-memory cache, independent of the environment."""
    return Settings(_env_file=None, DATABASE_PATH=IN_MEMORY_DATABASE_PATH)


@pytest.fixture
async def cache(settings: Settings) -> AsyncGenerator[RemoteCaching, None]:
    """Create an initialized in-memory cache for testing."""
    engine = RemoteCaching(settings)
    await engine.init()
    yield engine
    await engine.dispose()


@pytest.fixture
def log_records() -> Generator[list[logging.LogRecord], None, None]:
    """Capture records emitted under the remote_caching logger."""
    records: list[logging.LogRecord] = []

    class _ListHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    handler = _ListHandler(level=logging.DEBUG)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    old_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield records
    logger.removeHandler(handler)
    logger.setLevel(old_level)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Remove handlers installed by setup_logging() or verbose mode."""
    yield
    reset_logging()
