"""Structured logging for memory-search.

Every record is written as one JSON object carrying the service name, the
request correlation id and any ``extra={...}`` fields passed at the call
site (channel names, error types, candidate counts).

Environment:
- MEMORY_SEARCH_LOG_LEVEL: DEBUG, INFO (default), WARNING, ...
- MEMORY_SEARCH_LOG_FILE: optional path for a rotating JSON log file
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

SERVICE_NAME = "memory_search"
ENV_PREFIX = "MEMORY_SEARCH"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else arrived through ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "correlation_id"}


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation id to the current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Return the correlation id bound to the current context, if any."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Unbind the correlation id."""
    _correlation_id.set(None)


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON."""

    def __init__(self, service_name: str = SERVICE_NAME, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "message": record.getMessage(),
        }

        context = {
            key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS
        }
        if context:
            payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the context's correlation id ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def get_log_level_from_env(service_prefix: str = ENV_PREFIX) -> int:
    """Resolve ``<prefix>_LOG_LEVEL``, falling back to INFO on unknown names."""
    level_name = os.environ.get(f"{service_prefix}_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def _configure(handler: logging.Handler, service_name: str) -> logging.Handler:
    handler.setFormatter(JSONFormatter(service_name=service_name))
    handler.addFilter(CorrelationIdFilter())
    return handler


def create_file_handler(
    log_file_path: str,
    service_name: str = SERVICE_NAME,
    max_bytes: int = 10_485_760,
    backup_count: int = 5,
) -> RotatingFileHandler:
    """Rotating JSON file handler; parent directories are created."""
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=log_file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    _configure(handler, service_name)
    return handler


def setup_structured_logging(
    service_name: str = SERVICE_NAME,
    log_file_path: str | None = None,
    log_level: int | None = None,
) -> logging.Logger:
    """Configure the package logger.

    Module loggers created with ``logging.getLogger(__name__)`` are children
    of the package logger and inherit its handlers.

    Args:
        service_name: Package logger name, also written as ``service``
        log_file_path: Optional JSON log file (default: MEMORY_SEARCH_LOG_FILE)
        log_level: Level (default: MEMORY_SEARCH_LOG_LEVEL)

    Returns:
        The configured package logger
    """
    if log_level is None:
        log_level = get_log_level_from_env()
    if log_file_path is None:
        log_file_path = os.environ.get(f"{ENV_PREFIX}_LOG_FILE")

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.addHandler(_configure(logging.StreamHandler(sys.stdout), service_name))

    if log_file_path:
        try:
            logger.addHandler(create_file_handler(log_file_path, service_name))
        except OSError as e:
            logger.warning(
                "File logging disabled",
                extra={"log_file": log_file_path, "error": str(e)},
            )

    logger.propagate = False
    return logger
