"""
Structured JSON logging for the event store.

Every record is rendered as one JSON object. Stream operations log through
StreamLoggerAdapter, so ``stream_id`` (and the operation name, when given)
land as top-level fields that Log Analytics or any JSON log pipeline can
filter on. Exceptions derived from EventStoreError also contribute their
``details`` dict.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from .exceptions import EventStoreError

PACKAGE_LOGGER = "event_stream_storage"

# LogRecord attributes never copied into the payload
_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message"}

# Context fields rendered right after the fixed fields, in this order
_CONTEXT_FIELDS = ("stream_id", "operation")


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class StructuredJsonFormatter(logging.Formatter):
    """
    Render log records as single-line JSON.

    Fields, in order:
    - timestamp: ISO 8601 in UTC
    - level, logger, message
    - stream_id, operation: when set on the record
    - any other ``extra`` fields
    - exception / error_details: when the record carries exc_info
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _CONTEXT_FIELDS:
            if key in record.__dict__:
                payload[key] = _json_safe(record.__dict__[key])

        for key, value in record.__dict__.items():
            if key in _RESERVED or key in payload or key.startswith("_"):
                continue
            payload[key] = _json_safe(value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            if isinstance(error, EventStoreError) and error.details:
                payload["error_details"] = {k: _json_safe(v) for k, v in error.details.items()}

        return json.dumps(payload, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = PACKAGE_LOGGER,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Send a logger's records to ``stream`` (stdout by default) as JSON.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure; defaults to the package logger,
            pass None for the root logger
        stream: Text stream to write to

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)

    # Replace rather than stack handlers on repeated calls
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def get_store_logger(component: str) -> logging.Logger:
    """Logger named ``event_stream_storage.<component>``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{component}")


class StreamLoggerAdapter(logging.LoggerAdapter):
    """
    Stamp stream context onto every record.

    The adapter's own context wins over per-call ``extra`` for the same key,
    so a record can never claim a different stream than its adapter.

    Example:
        >>> log = StreamLoggerAdapter(logger, {"stream_id": "order-42"})
        >>> log.info("Stream deleted", extra={"operation": "delete_stream"})
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **self.extra}
        return msg, kwargs
