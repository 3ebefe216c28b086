"""Logging configuration for qbtui.

Log output goes to a rotating diagnostic file; the terminal belongs to the
full-screen session.
Timestamps are rendered in the operator's preferred timezone.
"""

from __future__ import annotations

import json
import logging
import logging.config
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from qbtui.utils.exceptions import QBTUIError
from qbtui.utils.timezones import TIMESTAMP_FORMAT, resolve_timezone

if TYPE_CHECKING:  # pragma: no cover
    from qbtui.models import ObservabilityConfig

correlation_id: ContextVar[str | None] = cast(
    "ContextVar[str | None]",
    ContextVar("correlation_id", default=None),
)

_RECORD_KEYS = frozenset(
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
        "getMessage",
        "correlation_id",
        "message",
        "asctime",
    }
)


class CorrelationFilter(logging.Filter):
    """Filter to add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record."""
        record.correlation_id = get_correlation_id() or "-"
        return True


class TimezoneFormatter(logging.Formatter):
    """Plain text formatter whose timestamps use a configured timezone."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        tz_name: str | None = None,
    ):
        super().__init__(fmt=fmt, datefmt=datefmt or TIMESTAMP_FORMAT)
        self.tz_name = tz_name

    def formatTime(  # noqa: N802
        self, record: logging.LogRecord, datefmt: str | None = None
    ) -> str:
        """Render the record creation time in the configured timezone."""
        moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
        local = moment.astimezone(resolve_timezone(self.tz_name))
        return local.strftime(datefmt or self.datefmt or TIMESTAMP_FORMAT)


class StructuredFormatter(TimezoneFormatter):
    """Structured JSON formatter for logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a JSON line."""
        try:
            log_entry: dict[str, Any] = {
                "timestamp": self.formatTime(record),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
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
                    if key not in _RECORD_KEYS
                }
            )
            return json.dumps(log_entry, default=str)
        except Exception:
            return f"{record.levelname} {record.name}: {record.getMessage()}"


def _resolve_log_file(log_file: str | None) -> Path | None:
    if not log_file:
        return None
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging(
    config: ObservabilityConfig,
    tz_name: str | None = None,
) -> Path | None:
    """Set up logging for the process.

    Args:
        config: Observability section of the configuration
        tz_name: IANA timezone used for timestamps (UTC when unknown)

    Returns:
        The resolved log file path, or None when file logging is disabled

    """
    level = config.log_level.value
    log_path = _resolve_log_file(config.log_file)

    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "()": TimezoneFormatter,
                "fmt": "[%(asctime)s] %(levelname)s %(correlation_id)s %(name)s.%(funcName)s: %(message)s",
                "tz_name": tz_name,
            },
            "structured": {
                "()": StructuredFormatter,
                "tz_name": tz_name,
            },
        },
        "filters": {
            "correlation": {
                "()": CorrelationFilter,
            },
        },
        "handlers": {
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": {
            "qbtui": {
                "level": level,
                "handlers": ["null"],
                "propagate": False,
            },
        },
        "root": {
            "level": logging.WARNING,
            "handlers": ["null"],
        },
    }

    if log_path is not None:
        logging_config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "structured" if config.structured_logging else "simple",
            "filters": ["correlation"],
            "filename": str(log_path),
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 3,
            "encoding": "utf-8",
        }
        logging_config["loggers"]["qbtui"]["handlers"].append("file")
        logging_config["root"]["handlers"].append("file")

    logging.config.dictConfig(logging_config)

    if config.log_correlation_id:
        correlation_id.set(str(uuid.uuid4())[:8])

    return log_path


def get_logger(name: str) -> logging.Logger:
    """Get a logger namespaced under ``qbtui``."""
    if name == "qbtui" or name.startswith("qbtui."):
        return logging.getLogger(name)
    return logging.getLogger(f"qbtui.{name}")


def set_correlation_id(corr_id: str | None = None) -> str:
    """Set correlation ID for the current context."""
    if corr_id is None:
        corr_id = str(uuid.uuid4())[:8]
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return correlation_id.get()


class LoggingContext:
    """Context manager that logs the start, end and duration of an operation.

    Expected failures (``QBTUIError``) are logged at WARNING without a
    traceback; anything else is logged at ERROR with one. Exceptions are
    never suppressed.
    """

    def __init__(
        self,
        operation: str,
        log_level: int = logging.DEBUG,
        slow_threshold: float = 1.0,
        **kwargs: Any,
    ):
        self.operation = operation
        self.kwargs = kwargs
        self.logger = get_logger("operations")
        self.start_time: float | None = None
        self.log_level = log_level
        self.slow_threshold = slow_threshold

    def __enter__(self) -> LoggingContext:
        self.start_time = time.monotonic()
        set_correlation_id()
        self.logger.log(self.log_level, "Starting %s", self.operation, extra=self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration = time.monotonic() - self.start_time if self.start_time else 0.0

        if exc_type is None:
            level = logging.INFO if duration >= self.slow_threshold else self.log_level
            self.logger.log(
                level,
                "Completed %s in %.3fs",
                self.operation,
                duration,
                extra=self.kwargs,
            )
        elif isinstance(exc_val, QBTUIError):
            self.logger.warning(
                "Failed %s in %.3fs: %s",
                self.operation,
                duration,
                exc_val,
                extra=self.kwargs,
            )
        else:
            self.logger.error(
                "Failed %s in %.3fs: %s",
                self.operation,
                duration,
                exc_val,
                extra=self.kwargs,
                exc_info=exc_val is not None,
            )

        return False


def log_exception(logger: logging.Logger, exc: Exception, context: str = "") -> None:
    """Log an exception with context."""
    if isinstance(exc, QBTUIError):
        logger.error(
            "%s: %s",
            context,
            exc.message,
            extra={"details": exc.details},
        )
    else:
        logger.exception("%s: %s", context, exc)
