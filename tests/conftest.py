"""
Shared test configuration and fixtures.

Stream-level tests run against every local document store backend
(in-memory and SQLite in-memory), so the protocol is checked against a real
database as well as the reference implementation.
"""

import logging

import pytest

from event_stream_storage import (
    DeleteMode,
    EventData,
    EventStore,
    EventStoreConfig,
    InMemoryDocumentStore,
    SQLiteConfig,
    SQLiteDocumentStore,
)

logger = logging.getLogger(__name__)


def make_events(start: int, count: int) -> list[EventData]:
    """Events with consecutive versions start..start+count-1."""
    return [EventData(version=v, body={"n": v}) for v in range(start, start + count)]


@pytest.fixture(params=["memory", "sqlite"])
async def document_store(request):
    """
    Fixture providing an initialized document store.

    Parametrized over the in-memory and SQLite backends.
    """
    if request.param == "memory":
        store = InMemoryDocumentStore()
    else:
        store = await SQLiteDocumentStore.create(SQLiteConfig(db_path=":memory:"))
    yield store
    await store.close()


@pytest.fixture
async def memory_store():
    """Fixture providing an in-memory store for tests that inspect raw documents."""
    store = InMemoryDocumentStore()
    yield store
    await store.close()


@pytest.fixture
def store_config():
    """Small page size so multi-page scans are exercised."""
    return EventStoreConfig(page_size=3)


@pytest.fixture
async def event_store(document_store, store_config):
    """EventStore with soft delete over each backend."""
    return EventStore(document_store, store_config)


@pytest.fixture
async def hard_event_store(document_store):
    """EventStore with hard delete over each backend."""
    return EventStore(document_store, EventStoreConfig(delete_mode=DeleteMode.HARD, page_size=3))


@pytest.fixture
async def sqlite_store():
    """Fixture providing an in-memory SQLite store for tests that inspect rows."""
    store = await SQLiteDocumentStore.create(SQLiteConfig(db_path=":memory:"))
    yield store
    await store.close()
