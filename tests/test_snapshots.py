"""Tests for snapshot creation and pruning."""

import pytest

from event_stream_storage import (
    EventStore,
    OptimisticConcurrencyError,
    StreamNotFoundError,
)
from event_stream_storage.documents import FIELD_DELETED, snapshot_id

from .conftest import make_events


def _live_snapshot_versions(memory_store, stream_id):
    return sorted(
        doc["version"]
        for doc in memory_store.documents.values()
        if doc["stream_id"] == stream_id and doc["type"] == "snapshot" and not doc[FIELD_DELETED]
    )


class TestCreateSnapshot:
    """Tests for create_snapshot."""

    @pytest.mark.asyncio
    async def test_snapshot_ahead_of_stream_fails(self, event_store):
        """A snapshot beyond the stream's version is a concurrency error."""
        await event_store.write_to_stream("s", make_events(1, 3))

        with pytest.raises(OptimisticConcurrencyError) as exc_info:
            await event_store.create_snapshot("s", 4, {"x": 1})

        assert exc_info.value.expected_version == 4
        assert exc_info.value.actual_version == 3

    @pytest.mark.asyncio
    async def test_snapshot_of_missing_stream_fails(self, event_store):
        """Snapshots need an existing stream."""
        with pytest.raises(StreamNotFoundError):
            await event_store.create_snapshot("missing", 0, {"x": 1})

    @pytest.mark.asyncio
    async def test_snapshot_at_older_version(self, event_store):
        """A snapshot may be taken at any version up to the current one."""
        await event_store.write_to_stream("s", make_events(1, 5))
        await event_store.create_snapshot("s", 2, {"at": 2})

        stream = await event_store.read_stream("s")

        assert stream.snapshot.version == 2
        assert [e.version for e in stream.events] == [3, 4, 5]

    @pytest.mark.asyncio
    async def test_resnapshot_same_version_overwrites(self, event_store):
        """Taking a snapshot at the same version replaces the old one."""
        await event_store.write_to_stream("s", make_events(1, 3))
        await event_store.create_snapshot("s", 3, {"rev": 1})
        await event_store.create_snapshot("s", 3, {"rev": 2})

        stream = await event_store.read_stream("s")

        assert stream.snapshot.body == {"rev": 2}

    @pytest.mark.asyncio
    async def test_snapshot_does_not_change_version(self, event_store):
        """Appends after a snapshot still use the header version."""
        await event_store.write_to_stream("s", make_events(1, 3))
        await event_store.create_snapshot("s", 3, {"x": 1})

        await event_store.write_to_stream("s", make_events(4, 1), expected_version=3)

        assert (await event_store.read_stream("s")).version == 4

    @pytest.mark.asyncio
    async def test_delete_older_snapshots(self, memory_store):
        """delete_older_snapshots prunes everything below the new snapshot."""
        store = EventStore(memory_store)
        await store.write_to_stream("s", make_events(1, 6))
        for version in (1, 2, 3):
            await store.create_snapshot("s", version, {"at": version})

        await store.create_snapshot("s", 5, {"at": 5}, delete_older_snapshots=True)

        assert _live_snapshot_versions(memory_store, "s") == [5]


class TestDeleteSnapshots:
    """Tests for delete_snapshots."""

    @pytest.mark.asyncio
    async def test_deletes_strictly_older(self, memory_store):
        """Snapshots below the bound are flagged, the bound itself survives."""
        store = EventStore(memory_store)
        await store.write_to_stream("s", make_events(1, 6))
        for version in (2, 4, 6):
            await store.create_snapshot("s", version, {"at": version})

        await store.delete_snapshots("s", 4)

        assert _live_snapshot_versions(memory_store, "s") == [4, 6]
        assert memory_store.documents[("s", snapshot_id("s", 2))][FIELD_DELETED] is True

    @pytest.mark.asyncio
    async def test_reads_fall_back_to_older_events(self, event_store):
        """Once all snapshots are pruned reads return every event."""
        await event_store.write_to_stream("s", make_events(1, 4))
        await event_store.create_snapshot("s", 3, {"at": 3})

        await event_store.delete_snapshots("s", 4)

        stream = await event_store.read_stream("s")
        assert stream.snapshot is None
        assert len(stream.events) == 4

    @pytest.mark.asyncio
    async def test_many_snapshots_across_pages(self, event_store):
        """Pruning covers snapshots spread over several query pages."""
        await event_store.write_to_stream("s", make_events(1, 10))
        for version in range(1, 11):
            await event_store.create_snapshot("s", version, {"at": version})

        await event_store.delete_snapshots("s", 10)

        stream = await event_store.read_stream("s")
        assert stream.snapshot.version == 10
        assert stream.events == []

    @pytest.mark.asyncio
    async def test_no_snapshots_is_a_no_op(self, event_store):
        """Pruning a stream without snapshots succeeds."""
        await event_store.write_to_stream("s", make_events(1, 2))

        await event_store.delete_snapshots("s", 10)

        assert (await event_store.read_stream("s")).version == 2

    @pytest.mark.asyncio
    async def test_missing_stream_fails(self, event_store):
        """Pruning a stream that does not exist fails."""
        with pytest.raises(StreamNotFoundError):
            await event_store.delete_snapshots("missing", 1)
