"""Structured logging configuration.

JSON output for production, plain text for development. Every record
emitted while an evaluation pass is running carries the pass id, so a
single sweep over a workspace's rules can be followed end to end.
"""

import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Id of the evaluation pass currently running in this task
evaluation_pass_id_ctx: ContextVar[str | None] = ContextVar(
    "evaluation_pass_id", default=None
)


@contextmanager
def bind_pass_id(pass_id: str | None = None) -> Iterator[str]:
    """Tag all log records inside the block with an evaluation pass id.

    Args:
        pass_id: Explicit id to use; a short random id is generated if omitted.

    Yields:
        The pass id in effect.
    """
    value = pass_id or uuid.uuid4().hex[:12]
    token = evaluation_pass_id_ctx.set(value)
    try:
        yield value
    finally:
        evaluation_pass_id_ctx.reset(token)


class JsonFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record.

    Keys: timestamp, level, service, message, logger, pass_id (when a
    pass is running), any structured fields, exception and location
    (for errors).
    """

    def __init__(self, service_name: str = "escalator-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "message": record.getMessage(),
            "logger": record.name,
        }

        pass_id = evaluation_pass_id_ctx.get()
        if pass_id:
            log_data["pass_id"] = pass_id

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development.

    Format: timestamp - service - level - [pass_id] - message key=value...
    """

    def __init__(self, service_name: str = "escalator-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        pass_id = evaluation_pass_id_ctx.get() or "-"

        base_msg = (
            f"{timestamp} - {self.service_name} - {record.levelname} - "
            f"[{pass_id}] - {record.getMessage()}"
        )

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            pairs = " ".join(f"{key}={value}" for key, value in extra_fields.items())
            base_msg = f"{base_msg} {pairs}"

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = "escalator-api",
) -> None:
    """Configure root logging for the service.

    Args:
        log_format: 'json' for structured logging, 'text' for human-readable
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service_name: Service name to include in logs
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if log_format.lower() == "json":
        formatter = JsonFormatter(service_name=service_name)
    else:
        formatter = TextFormatter(service_name=service_name)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


class StructuredLogger:
    """Logger wrapper that accepts structured fields as keyword arguments."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        msg: str,
        extra_fields: dict[str, Any] | None = None,
        exc_info: bool = False,
    ) -> None:
        record_extra = {"extra_fields": extra_fields} if extra_fields else {}
        self._logger.log(level, msg, extra=record_extra, exc_info=exc_info)

    def debug(self, msg: str, exc_info: bool = False, **extra_fields: Any) -> None:
        self._log(logging.DEBUG, msg, extra_fields or None, exc_info)

    def info(self, msg: str, exc_info: bool = False, **extra_fields: Any) -> None:
        self._log(logging.INFO, msg, extra_fields or None, exc_info)

    def warning(self, msg: str, exc_info: bool = False, **extra_fields: Any) -> None:
        self._log(logging.WARNING, msg, extra_fields or None, exc_info)

    def error(self, msg: str, exc_info: bool = False, **extra_fields: Any) -> None:
        self._log(logging.ERROR, msg, extra_fields or None, exc_info)

    def exception(self, msg: str, **extra_fields: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, msg, extra_fields or None, exc_info=True)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)
