"""
Logging for the psychosocial risk assessment core.

Records carry the assessment, batch and report ids of the operation that
emitted them, so a questionnaire's progression can be followed across the
API, tracker and repository layers. Context lives in a ``ContextVar`` and is
therefore isolated per request thread.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
import time
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from types import TracebackType
from typing import Any, ParamSpec, TypeVar

from .config import LoggingConfig, get_settings

P = ParamSpec("P")
R = TypeVar("R")

CONTEXT_FIELDS = ("assessment_id", "batch_id", "report_id", "operation")
NOISY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "alembic.runtime.migration")

_context: ContextVar[dict[str, Any]] = ContextVar("psyrisk_log_context", default={})


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with the tracked ids as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, ensure_ascii=False, default=str)


class ContextFilter(logging.Filter):
    """Copies the current logging context onto every record passing through."""

    @property
    def context(self) -> dict[str, Any]:
        return _context.get()

    def set_context(self, **kwargs: Any) -> None:
        _context.set({**_context.get(), **kwargs})

    def clear_context(self) -> None:
        _context.set({})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context.get().items():
            setattr(record, key, value)
        return True


context_filter = ContextFilter()


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    structured: bool = True,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Install handlers for the ``psyrisk`` logger tree.

    Files always receive JSON; the console gets JSON only when ``structured``.

    Example:
        >>> setup_logging(level="DEBUG", log_file="./logs/psyrisk.log", structured=False)
    """
    handlers: dict[str, dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "structured" if structured else "plain",
            "filters": ["context"],
            "stream": "ext://sys.stdout",
        }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "structured",
            "filters": ["context"],
            "filename": log_file,
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "encoding": "utf-8",
        }

    names = list(handlers)
    loggers: dict[str, dict[str, Any]] = {
        "psyrisk": {"level": level, "handlers": names, "propagate": False},
    }
    for noisy in NOISY_LOGGERS:
        loggers[noisy] = {"level": "WARNING", "handlers": names, "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {"()": StructuredFormatter},
                "plain": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "filters": {"context": {"()": lambda: context_filter}},
            "handlers": handlers,
            "loggers": loggers,
            "root": {"level": level, "handlers": names},
        }
    )


def setup_logging_from_config(config: LoggingConfig) -> None:
    file_handler = config.get_file_handler_config()
    setup_logging(
        level=config.level,
        log_file=file_handler["filename"] if file_handler else None,
        structured=config.structured,
        enable_console=config.console_enabled,
        max_bytes=config.max_bytes,
        backup_count=config.backup_count,
    )


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``psyrisk`` namespace, whatever module path is given."""
    if name == "psyrisk" or name.startswith("psyrisk."):
        return logging.getLogger(name)
    return logging.getLogger(f"psyrisk.{name}")


def set_context(**kwargs: Any) -> None:
    """
    Attach ids to every record logged from here on in this thread.

    Example:
        >>> set_context(assessment_id=12, batch_id=3)
    """
    context_filter.set_context(**kwargs)


def clear_context() -> None:
    context_filter.clear_context()


class LogContext:
    """Scoped logging context; the previous context comes back on exit."""

    def __init__(self, **kwargs: Any):
        self.context = kwargs
        self._token = None

    def __enter__(self) -> LogContext:
        self._token = _context.set({**_context.get(), **self.context})
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        _context.reset(self._token)


def _timed(
    operation: str, resolve_logger: Callable[[Callable[..., Any]], logging.Logger], level: int
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            log = resolve_logger(func)
            started = time.perf_counter()
            with LogContext(operation=operation):
                log.log(level, f"Starting {operation}")
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    elapsed = time.perf_counter() - started
                    log.error(f"{operation} failed after {elapsed:.3f}s: {e}", exc_info=True)
                    raise
                log.log(level, f"{operation} finished in {time.perf_counter() - started:.3f}s")
                return result

        return wrapper

    return decorator


def log_operation(
    operation: str, logger: logging.Logger | None = None
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Log start, duration and failure of an application operation at INFO.

    Example:
        >>> @log_operation("save_dimension")
        ... def save_dimension(session, assessment_id, dimension_id, items):
        ...     ...
    """
    return _timed(operation, lambda func: logger or get_logger(func.__module__), logging.INFO)


def log_database_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Same as ``log_operation`` for repository calls, at DEBUG under ``psyrisk.database``."""
    return _timed(f"db.{operation}", lambda func: get_logger("database"), logging.DEBUG)


def auto_configure_logging() -> None:
    """
    Configure from ``ENVIRONMENT``: ``test`` keeps only warnings and writes no
    file, ``production`` follows the ``LOG_`` settings, anything else logs
    DEBUG as plain text to the console.
    """
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env == "test":
        setup_logging(level="WARNING", structured=False, enable_console=False)
    elif env == "production":
        setup_logging_from_config(get_settings().logging)
    else:
        setup_logging(level="DEBUG", structured=False)
    get_logger(__name__).info(f"Logging configured for {env} environment")


if not logging.getLogger("psyrisk").handlers:
    auto_configure_logging()
