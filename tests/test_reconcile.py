"""Tests for stream consistency inspection."""

import logging

import pytest

from event_stream_storage import EventStore, StreamConsistencyReport, StreamNotFoundError
from event_stream_storage.documents import FIELD_DELETED, event_id

from .conftest import make_events


class TestInspectStream:
    """Tests for inspect_stream."""

    @pytest.mark.asyncio
    async def test_consistent_stream(self, event_store):
        """A fully written stream reports no gap."""
        await event_store.write_to_stream("s", make_events(1, 5))

        report = await event_store.inspect_stream("s")

        assert report.declared_version == 5
        assert report.event_count == 5
        assert report.highest_event_version == 5
        assert report.missing_events == 0
        assert report.is_consistent is True

    @pytest.mark.asyncio
    async def test_empty_stream(self, event_store):
        """A stream without events is consistent at version 0."""
        await event_store.write_to_stream("s", [])

        report = await event_store.inspect_stream("s")

        assert report.is_consistent is True
        assert report.highest_event_version is None

    @pytest.mark.asyncio
    async def test_missing_event_documents_reported(self, memory_store, caplog):
        """Events lost after the header commit show up as a gap and a warning."""
        store = EventStore(memory_store)
        await store.write_to_stream("s", make_events(1, 5))
        del memory_store.documents[("s", event_id("s", 4))]
        del memory_store.documents[("s", event_id("s", 5))]

        with caplog.at_level(logging.WARNING, logger="event_stream_storage"):
            report = await store.inspect_stream("s")

        assert report.missing_events == 2
        assert report.highest_event_version == 3
        assert report.is_consistent is False
        assert any("inconsistent" in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_deleted_events_counted_separately(self, memory_store):
        """Individually flagged events are not counted as live."""
        store = EventStore(memory_store)
        await store.write_to_stream("s", make_events(1, 3))
        memory_store.documents[("s", event_id("s", 2))][FIELD_DELETED] = True

        report = await store.inspect_stream("s")

        assert report.event_count == 2
        assert report.deleted_event_count == 1
        assert report.missing_events == 1

    @pytest.mark.asyncio
    async def test_deleted_stream_not_found(self, event_store):
        """Deleted streams cannot be inspected."""
        await event_store.write_to_stream("s", make_events(1, 1))
        await event_store.delete_stream("s", 1)

        with pytest.raises(StreamNotFoundError):
            await event_store.inspect_stream("s")


class TestStreamConsistencyReport:
    """Tests for the report value type."""

    def test_to_dict(self):
        """to_dict includes the derived fields."""
        report = StreamConsistencyReport("s", 4, 3, 3)

        data = report.to_dict()

        assert data["missing_events"] == 1
        assert data["is_consistent"] is False
        assert data["deleted_event_count"] == 0
