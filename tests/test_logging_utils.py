"""Tests for structured logging utilities."""

import io
import json
import logging
import sys

import pytest

from event_stream_storage import EventStore, StreamNotFoundError
from event_stream_storage.logging_utils import (
    StreamLoggerAdapter,
    StructuredJsonFormatter,
    configure_structured_logging,
    get_store_logger,
)

from .conftest import make_events


def _record(msg: str = "hello", exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "event_stream_storage.test", logging.INFO, __file__, 1, msg, (), exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJsonFormatter:
    """Tests for StructuredJsonFormatter."""

    def test_basic_fields(self):
        output = json.loads(StructuredJsonFormatter().format(_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "event_stream_storage.test"
        assert output["message"] == "hello"
        assert "timestamp" in output
        assert "lineno" not in output

    def test_stream_context_comes_first(self):
        """stream_id and operation follow the fixed fields."""
        record = _record(attempt=2, operation="write_to_stream", stream_id="order-1")

        output = json.loads(StructuredJsonFormatter().format(record))

        assert list(output)[4:] == ["stream_id", "operation", "attempt"]

    def test_non_serializable_extra_stringified(self):
        output = json.loads(StructuredJsonFormatter().format(_record(target=object())))

        assert output["target"].startswith("<object object")

    def test_event_store_error_details(self):
        """EventStoreError details are surfaced next to the traceback."""
        try:
            raise StreamNotFoundError("order-7")
        except StreamNotFoundError:
            record = _record("read failed", exc_info=sys.exc_info())

        output = json.loads(StructuredJsonFormatter().format(record))

        assert "StreamNotFoundError" in output["exception"]
        assert output["error_details"] == {"stream_id": "order-7"}

    def test_plain_exception_has_no_details(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record("failed", exc_info=sys.exc_info())

        output = json.loads(StructuredJsonFormatter().format(record))

        assert "ValueError: boom" in output["exception"]
        assert "error_details" not in output


class TestLoggerHelpers:
    """Tests for logger configuration helpers."""

    def test_get_store_logger_name(self):
        assert get_store_logger("api").name == "event_stream_storage.api"

    def test_configure_replaces_handlers(self):
        name = "event_stream_storage.test_configure"
        configure_structured_logging(logging.DEBUG, name)
        logger = configure_structured_logging(logging.WARNING, name)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredJsonFormatter)
        assert logger.level == logging.WARNING
        logger.handlers.clear()

    def test_stream_adapter_context_wins(self, caplog):
        """Per-call extra is merged, but cannot override the adapter's stream."""
        adapter = StreamLoggerAdapter(get_store_logger("test"), {"stream_id": "order-9"})

        with caplog.at_level(logging.INFO, logger="event_stream_storage"):
            adapter.info("deleted", extra={"mode": "soft", "stream_id": "other"})

        record = caplog.records[-1]
        assert record.stream_id == "order-9"
        assert record.mode == "soft"

    def test_stream_adapter_accepts_extra_none(self, caplog):
        """An explicit extra=None still gets the adapter's context."""
        adapter = StreamLoggerAdapter(get_store_logger("test"), {"stream_id": "order-5"})

        with caplog.at_level(logging.INFO, logger="event_stream_storage"):
            adapter.info("read", extra=None)

        assert caplog.records[-1].stream_id == "order-5"

    @pytest.mark.asyncio
    async def test_store_operations_log_json(self, memory_store):
        """Public API records carry stream_id and operation."""
        buffer = io.StringIO()
        logger = configure_structured_logging(logging.DEBUG, "event_stream_storage.api", buffer)
        logger.propagate = False
        try:
            store = EventStore(memory_store)
            await store.write_to_stream("order-3", make_events(1, 2))
        finally:
            logger.handlers.clear()
            logger.propagate = True
            logger.setLevel(logging.NOTSET)

        lines = [json.loads(line) for line in buffer.getvalue().splitlines()]
        assert lines[0]["stream_id"] == "order-3"
        assert lines[0]["operation"] == "write_to_stream"
