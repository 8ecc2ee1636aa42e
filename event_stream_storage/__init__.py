"""
Event Stream Storage

Event-sourced streams on top of a partitioned document store.

Provides:
- Append-only streams with per-stream metadata
- Optimistic concurrency on a per-stream header document
- Snapshots that short-circuit stream reads
- Soft and hard stream deletion, snapshot pruning
- Document store backends (Cosmos DB, SQLite, in-memory)

Usage:

    >>> from event_stream_storage import EventStore, EventData, SQLiteDocumentStore
    >>> documents = await SQLiteDocumentStore.create()
    >>> async with EventStore(documents) as store:
    ...     await store.write_to_stream("order-1", [EventData(1, {"placed": True})])
    ...     await store.write_to_stream(
    ...         "order-1", [EventData(2, {"paid": True})], expected_version=1
    ...     )
    ...     stream = await store.read_stream("order-1")
    ...     stream.version
    2

Backend Selection:

    # Cosmos DB for cloud storage
    from event_stream_storage.backends.cosmos import CosmosDocumentStore, CosmosConfig

    # SQLite for embedded applications and local development
    from event_stream_storage.backends import SQLiteDocumentStore, SQLiteConfig

    # In-memory for tests
    from event_stream_storage.backends import InMemoryDocumentStore

Payload Types:

    registry = CodecRegistry()
    registry.register("order-placed.v1", OrderPlaced)  # dataclass
    store = EventStore(documents, codecs=registry)
"""

from .backends import (
    DocumentFilter,
    DocumentQuery,
    DocumentStore,
    InMemoryDocumentStore,
    SQLiteConfig,
    SQLiteDocumentStore,
)
from .backends.cosmos import CosmosConfig, CosmosDocumentStore
from .codecs import CodecRegistry, DataclassCodec, JsonCodec, PayloadCodec
from .config import DeleteMode, EventStoreConfig
from .exceptions import (
    AuthenticationError,
    CodecError,
    DocumentConflictError,
    DocumentNotFoundError,
    EventStoreError,
    OptimisticConcurrencyError,
    PartialWriteError,
    StorageConnectionError,
    StorageIOError,
    StreamAlreadyExistsError,
    StreamNotFoundError,
    ValidationError,
)
from .logging_utils import configure_structured_logging
from .protocol import EventData, Snapshot, Stream, StreamConsistencyReport
from .store import EventStore

__all__ = [
    # Public API
    "EventStore",
    "EventStoreConfig",
    "DeleteMode",
    # Value types
    "EventData",
    "Snapshot",
    "Stream",
    "StreamConsistencyReport",
    # Codecs
    "CodecRegistry",
    "PayloadCodec",
    "JsonCodec",
    "DataclassCodec",
    # Backends
    "DocumentStore",
    "DocumentQuery",
    "DocumentFilter",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "SQLiteConfig",
    "CosmosDocumentStore",
    "CosmosConfig",
    # Logging
    "configure_structured_logging",
    # Exceptions
    "EventStoreError",
    "StreamNotFoundError",
    "StreamAlreadyExistsError",
    "OptimisticConcurrencyError",
    "PartialWriteError",
    "DocumentConflictError",
    "DocumentNotFoundError",
    "CodecError",
    "ValidationError",
    "StorageIOError",
    "StorageConnectionError",
    "AuthenticationError",
]

__version__ = "0.1.0"
