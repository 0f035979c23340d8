"""
Structured logging for remote caching.

Provides:
- Context variables for the cache key and operation (using contextvars)
- JSONFormatter for machine-readable logs to file
- RichHandler for pretty console output
- ContextLogger wrapper that attaches context to all log calls
- setup_logging() that configures both file and console handlers
- enable_verbose_logging() used by verbose mode
- Context manager cache_context() for scoped context
- get_logger() factory (configures nothing; records propagate to the host)
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

ROOT_LOGGER_NAME = "remote_caching"

_cache_key_var: ContextVar[str | None] = ContextVar("cache_key", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


def get_cache_key() -> str | None:
    """Get the cache key currently being served, if any."""
    return _cache_key_var.get()


def get_operation() -> str | None:
    """Get the current cache operation name, if any."""
    return _operation_var.get()


@contextmanager
def cache_context(
    cache_key: str | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        cache_key: Cache key to set in context.
        operation: Operation name to set in context (e.g. "call", "clear").

    Yields:
        None. Context variables are set for the duration of the context.
    """
    old_key = _cache_key_var.get()
    old_operation = _operation_var.get()

    try:
        if cache_key is not None:
            _cache_key_var.set(cache_key)
        if operation is not None:
            _operation_var.set(operation)
        yield
    finally:
        _cache_key_var.set(old_key)
        _operation_var.set(old_operation)


class JSONFormatter(logging.Formatter):
    """JSON formatter for machine-readable log files.

    Produces JSON Lines format with structured context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        cache_key = get_cache_key()
        operation = get_operation()
        if cache_key:
            log_obj["cache_key"] = cache_key
        if operation:
            log_obj["operation"] = operation

        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ContextRichHandler(RichHandler):
    """Rich handler that prefixes console output with the cache context."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        """Override to add context prefix."""
        level_text = super().get_level_text(record)

        operation = get_operation()
        cache_key = get_cache_key()

        if not operation and not cache_key:
            return level_text

        text = Text.assemble(level_text)
        if operation:
            text.append(f" {operation}", style="cyan")
        if cache_key:
            # Keys are often full URLs
            short_key = cache_key if len(cache_key) <= 32 else f"{cache_key[:29]}..."
            text.append(f" {short_key}", style="magenta")
        return text


class ContextLogger:
    """Logger wrapper that automatically attaches context to log calls.

    Keyword arguments other than the standard logging ones are collected
    into the record's ``extra`` mapping.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        """Get the logger name."""
        return self._logger.name

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        """Internal logging method that adds context."""
        extra = kwargs.pop("extra", {})

        cache_key = get_cache_key()
        operation = get_operation()
        if cache_key:
            extra["cache_key"] = cache_key
        if operation:
            extra["operation"] = operation

        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel"):
                extra[key] = kwargs.pop(key)

        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


_console: Console | None = None
_setup_done: bool = False


def get_console() -> Console:
    """Get the global rich console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Set up logging with JSON file handler and rich console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, only console logging is enabled.
        console_output: Whether to enable console output.
    """
    global _setup_done

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    root_logger.handlers.clear()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=get_console(),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=True,
        )
        rich_handler.setLevel(getattr(logging, log_level.upper()))
        root_logger.addHandler(rich_handler)

    root_logger.propagate = False

    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    _setup_done = True


def reset_logging() -> None:
    """Undo setup_logging(): drop its handlers and propagate to the host again."""
    global _setup_done

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True

    _setup_done = False


def enable_verbose_logging() -> None:
    """Make INFO trace messages visible.

    Lowers the package logger to INFO. Handlers are only installed when
    neither the host application nor setup_logging() has configured any.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if root_logger.getEffectiveLevel() > logging.INFO:
        root_logger.setLevel(logging.INFO)

    if not _setup_done and not root_logger.handlers and not logging.getLogger().handlers:
        setup_logging("INFO")


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Library loggers propagate to the host application's handlers until
    setup_logging() is called (the CLI does this).

    Args:
        name: Logger name (usually __name__).

    Returns:
        ContextLogger wrapper around the standard logger.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return ContextLogger(logging.getLogger(name))
