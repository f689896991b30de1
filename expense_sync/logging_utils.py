"""
Structured JSON logging utilities.

Sync failures are absorbed rather than raised, so the log is where they
surface. These helpers emit single-line JSON records that carry the
owner and, where one is involved, the record identity as fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

PACKAGE_LOGGER = "expense_sync"

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
}


def _jsonable(value: Any) -> Any:
    """Render sync-domain values (states, timestamps, paths) as JSON scalars."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset, tuple)):
        return [_jsonable(v) for v in value]
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter for sync logs.

    Outputs logs as single-line JSON objects with consistent fields:
    - timestamp: ISO 8601 format in UTC
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - component: Logger name below the package (engine, remote, ...)
    - message: Log message
    - Context fields (owner_id, identity) and any other extras
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        prefix = f"{PACKAGE_LOGGER}."
        if record.name.startswith(prefix):
            log_obj["component"] = record.name[len(prefix):]

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_obj[key] = _jsonable(value)

        return json.dumps(log_obj, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Configure structured JSON logging on stdout.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())

    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def get_sync_logger(component: str) -> logging.Logger:
    """
    Get the logger for one sync component.

    Args:
        component: Component name ('engine', 'remote', 'local', 'connectivity')

    Returns:
        Logger instance with name 'expense_sync.{component}'
    """
    return logging.getLogger(f"{PACKAGE_LOGGER}.{component}")


class SyncLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps the owner, and optionally one record
    identity, on every log record.

    Example:
        >>> log = SyncLoggerAdapter(get_sync_logger("engine"), owner_id="user123")
        >>> log.bind("loc-1").warning("push failed")  # owner_id + identity
    """

    def __init__(self, logger: logging.Logger, owner_id: str, identity: str | None = None):
        context: dict[str, Any] = {"owner_id": owner_id}
        if identity is not None:
            context["identity"] = identity
        super().__init__(logger, context)

    @property
    def owner_id(self) -> str:
        return self.extra["owner_id"]

    def bind(self, identity: str) -> "SyncLoggerAdapter":
        """Return an adapter for the same owner scoped to one record."""
        return SyncLoggerAdapter(self.logger, self.owner_id, identity)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Merge the bound context under any call-site extras."""
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs
