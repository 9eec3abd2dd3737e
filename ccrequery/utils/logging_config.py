"""Structured logging configuration for ccrequery.

Provides logging setup with correlation IDs, structured output,
and configurable log levels.
"""

from __future__ import annotations

import json
import logging
import logging.config
import sys
import time
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from ccrequery.utils.rich_logging import FileFormatter, create_rich_handler

if TYPE_CHECKING:  # pragma: no cover
    from ccrequery.models import ObservabilityConfig

correlation_id: ContextVar[str | None] = cast(
    "ContextVar[str | None]",
    ContextVar("correlation_id", default=None),
)

# LogRecord attributes that are not user-supplied extras
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "correlation_id",
    }
)


class CorrelationFilter(logging.Filter):
    """Filter to add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record."""
        record.correlation_id = correlation_id.get() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Structured JSON formatter for logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        try:
            log_entry: dict[str, Any] = {
                "timestamp": time.time(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            }

            if hasattr(record, "correlation_id"):
                log_entry["correlation_id"] = record.correlation_id

            if record.exc_info:
                log_entry["exception"] = self.formatException(record.exc_info)

            log_entry.update(
                {
                    key: value
                    for key, value in record.__dict__.items()
                    if key not in _RESERVED_RECORD_KEYS
                }
            )

            return json.dumps(log_entry, default=str)
        except Exception:
            # Fall back to plain text rather than failing inside logging
            return f"{record.levelname} {record.name}: {record.getMessage()}"


def setup_logging(config: ObservabilityConfig) -> None:
    """Set up logging configuration with Rich console output.

    The console uses a Rich handler unless structured logging is requested,
    in which case records are written to stdout as JSON lines.
    """
    level = config.log_level.value

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
            },
            "simple": {
                "()": FileFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s.%(funcName)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "filters": {
            "correlation": {
                "()": CorrelationFilter,
            },
        },
        "handlers": {},
        "loggers": {
            "ccrequery": {
                "level": level,
                "handlers": [],
                "propagate": False,
            },
        },
        "root": {
            "level": level,
            "handlers": [],
        },
    }

    if config.structured_logging:
        logging_config["handlers"]["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "structured",
            "filters": ["correlation"],
            "stream": sys.stdout,
        }
        logging_config["loggers"]["ccrequery"]["handlers"].append("console")

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logging_config["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "level": level,
            "formatter": "structured" if config.structured_logging else "simple",
            "filters": ["correlation"],
            "filename": str(log_path),
            "encoding": "utf-8",
        }
        logging_config["loggers"]["ccrequery"]["handlers"].append("file")

    logging.config.dictConfig(logging_config)

    if not config.structured_logging:
        rich_handler = create_rich_handler(level=level)
        rich_handler.addFilter(CorrelationFilter())
        logging.getLogger("ccrequery").addHandler(rich_handler)

    if config.log_correlation_id:
        correlation_id.set(str(uuid.uuid4()))


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    if name == "ccrequery" or name.startswith("ccrequery."):
        return logging.getLogger(name)
    return logging.getLogger(f"ccrequery.{name}")


def set_correlation_id(corr_id: str | None = None) -> str:
    """Set correlation ID for the current context."""
    if corr_id is None:
        corr_id = str(uuid.uuid4())
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return correlation_id.get()


class LoggingContext:
    """Context manager that tags log records with a correlation ID and times an operation."""

    def __init__(
        self,
        operation: str,
        log_level: int = logging.DEBUG,
        slow_threshold: float = 1.0,
        **kwargs: Any,
    ):
        """Initialize operation context manager.

        Args:
            operation: Name of the operation
            log_level: Level used for start/completion messages
            slow_threshold: Duration in seconds above which completion logs at INFO
            **kwargs: Additional context included in the log messages

        """
        self.operation = operation
        self.kwargs = kwargs
        self.logger = get_logger("context")
        self.log_level = log_level
        self.slow_threshold = slow_threshold
        self.start_time: float | None = None
        self._previous_id: str | None = None

    def __enter__(self) -> LoggingContext:
        """Enter the context manager."""
        self.start_time = time.time()
        self._previous_id = correlation_id.get()
        set_correlation_id()
        self.logger.log(
            self.log_level, "Starting %s %s", self.operation, self.kwargs or ""
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit the context manager."""
        duration = time.time() - (self.start_time or time.time())
        try:
            if exc_type is not None:
                self.logger.error(
                    "Failed %s after %.3fs: %s", self.operation, duration, exc_val
                )
            else:
                level = (
                    logging.INFO if duration >= self.slow_threshold else self.log_level
                )
                self.logger.log(
                    level, "Completed %s in %.3fs", self.operation, duration
                )
        finally:
            correlation_id.set(self._previous_id)


def log_exception(logger: logging.Logger, exc: Exception, context: str = "") -> None:
    """Log an exception with its traceback and optional context prefix."""
    prefix = f"{context}: " if context else ""
    logger.error("%s%s", prefix, exc, exc_info=exc)
