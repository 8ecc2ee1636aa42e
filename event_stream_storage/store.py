"""
Event store public API.

EventStore exposes stream operations over any DocumentStore:

- read_stream: current version, metadata, events since the latest snapshot
- write_to_stream: append events under optimistic concurrency
- delete_stream: soft or hard delete, per EventStoreConfig.delete_mode
- create_snapshot / delete_snapshots: snapshot management
- inspect_stream: report a header/event gap left by a partial write

All operations are async and coordinate only through the store's
conditional writes; there is no locking inside EventStore.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .backends.base import DocumentStore
from .codecs import CodecRegistry
from .config import EventStoreConfig
from .documents import ID_SEPARATOR
from .exceptions import ValidationError
from .logging_utils import StreamLoggerAdapter, get_store_logger
from .protocol import EventData, Stream, StreamConsistencyReport
from .streams import DeletionManager, StreamReader, StreamWriter, inspect_stream

logger = get_store_logger("api")


def _validate_stream_id(stream_id: str) -> None:
    if not isinstance(stream_id, str) or not stream_id:
        raise ValidationError("stream_id", "must be a non-empty string")
    if ID_SEPARATOR in stream_id:
        raise ValidationError("stream_id", f"must not contain '{ID_SEPARATOR}'", stream_id)


def _validate_version(field: str, version: int) -> None:
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise ValidationError(field, "must be a non-negative integer", str(version))


class EventStore:
    """Event-sourced streams on top of a partitioned document store.

    Usage:

        >>> async with await SQLiteDocumentStore.create() as documents:
        ...     store = EventStore(documents, EventStoreConfig(delete_mode=DeleteMode.HARD))
        ...     await store.write_to_stream("order-1", [EventData(1, {"placed": True})])
        ...     stream = await store.read_stream("order-1")
    """

    def __init__(
        self,
        store: DocumentStore,
        config: EventStoreConfig | None = None,
        codecs: CodecRegistry | None = None,
    ):
        self.store = store
        self.config = config or EventStoreConfig()
        self.codecs = codecs or CodecRegistry()
        self._reader = StreamReader(self.store, self.config, self.codecs)
        self._writer = StreamWriter(self.store, self.config, self.codecs)
        self._deletion = DeletionManager(self.store, self.config, self.codecs)

    @classmethod
    async def create(
        cls,
        store: DocumentStore,
        config: EventStoreConfig | None = None,
        codecs: CodecRegistry | None = None,
    ) -> EventStore:
        """Initialize the document store and wrap it in an EventStore."""
        await store.initialize()
        return cls(store, config, codecs)

    async def close(self) -> None:
        """Close the underlying document store."""
        await self.store.close()

    async def __aenter__(self) -> EventStore:
        await self.store.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _log(self, stream_id: str, operation: str) -> StreamLoggerAdapter:
        return StreamLoggerAdapter(logger, {"stream_id": stream_id, "operation": operation})

    # =========================================================================
    # Stream operations
    # =========================================================================

    async def read_stream(self, stream_id: str) -> Stream:
        """Read a stream's current state.

        Raises:
            StreamNotFoundError: Stream never written or deleted
        """
        _validate_stream_id(stream_id)
        return await self._reader.read_stream(stream_id)

    async def write_to_stream(
        self,
        stream_id: str,
        events: Sequence[EventData],
        expected_version: int | None = None,
        metadata: Any = None,
    ) -> None:
        """Append events to a stream.

        Omit ``expected_version`` to create a new stream.

        Raises:
            StreamNotFoundError: expected_version given for a missing stream
            StreamAlreadyExistsError: New stream requested but it exists
            OptimisticConcurrencyError: Stream not at expected_version
            PartialWriteError: Header committed but not every event stored
        """
        _validate_stream_id(stream_id)
        if expected_version is not None:
            _validate_version("expected_version", expected_version)
        self._log(stream_id, "write_to_stream").debug(
            f"Writing {len(events)} events (expected_version={expected_version})"
        )
        await self._writer.write_to_stream(stream_id, events, expected_version, metadata)

    async def delete_stream(self, stream_id: str, expected_version: int) -> None:
        """Delete a stream.

        Raises:
            StreamNotFoundError: Stream missing or already deleted
            OptimisticConcurrencyError: Stream not at expected_version
        """
        _validate_stream_id(stream_id)
        _validate_version("expected_version", expected_version)
        self._log(stream_id, "delete_stream").debug(
            f"Deleting stream ({self.config.delete_mode.value})"
        )
        await self._deletion.delete_stream(stream_id, expected_version)

    async def create_snapshot(
        self,
        stream_id: str,
        version: int,
        snapshot: Any,
        metadata: Any = None,
        delete_older_snapshots: bool = False,
    ) -> None:
        """Store a snapshot of a stream at ``version``.

        Raises:
            StreamNotFoundError: Stream missing or deleted
            OptimisticConcurrencyError: ``version`` is ahead of the stream
        """
        _validate_stream_id(stream_id)
        _validate_version("version", version)
        await self._deletion.create_snapshot(
            stream_id, version, snapshot, metadata, delete_older_snapshots
        )

    async def delete_snapshots(self, stream_id: str, older_than_version: int) -> None:
        """Delete every snapshot with version < ``older_than_version``.

        Raises:
            StreamNotFoundError: Stream missing or deleted
        """
        _validate_stream_id(stream_id)
        _validate_version("older_than_version", older_than_version)
        await self._deletion.delete_snapshots(stream_id, older_than_version)

    async def inspect_stream(self, stream_id: str) -> StreamConsistencyReport:
        """Report whether a stream's stored events match its declared version.

        Raises:
            StreamNotFoundError: Stream missing or deleted
        """
        _validate_stream_id(stream_id)
        report = await inspect_stream(self.store, self.config, stream_id)
        self._log(stream_id, "inspect_stream").debug(
            f"Inspected stream: consistent={report.is_consistent}"
        )
        return report
