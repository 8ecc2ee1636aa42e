"""
Abstract base classes for document store backends.

The stream protocol only ever talks to a store through DocumentStore:
point reads, conditional creates, token-guarded replaces, upserts and
ordered, paginated queries within one partition. All backends (in-memory,
SQLite, Cosmos DB) implement these interfaces.

Documents cross this boundary as plain dicts (see documents.py for the
shape). Stores attach their concurrency token under ``_etag`` on every
document they return and never expect callers to interpret it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..documents import (
    FIELD_DELETED,
    FIELD_STREAM_ID,
    FIELD_TYPE,
    FIELD_VERSION,
    DocumentType,
)


@dataclass(frozen=True)
class DocumentFilter:
    """Predicate for query_documents.

    Every set attribute must match. ``version_lt`` keeps documents whose
    version is strictly below the given value.
    """

    stream_id: str
    document_type: DocumentType | None = None
    deleted: bool | None = None
    version_lt: int | None = None

    def matches(self, document: dict[str, Any]) -> bool:
        """Evaluate the predicate against a document in Python."""
        if document.get(FIELD_STREAM_ID) != self.stream_id:
            return False
        if self.document_type is not None and document.get(FIELD_TYPE) != self.document_type.value:
            return False
        if self.deleted is not None and bool(document.get(FIELD_DELETED, False)) != self.deleted:
            return False
        if self.version_lt is not None and not document.get(FIELD_VERSION, 0) < self.version_lt:
            return False
        return True


class DocumentQuery(ABC):
    """A lazily paginated, ordered query result.

    Consumers loop ``while query.has_more_results`` and call
    ``fetch_next_page()``. A page may be empty; ``has_more_results``
    becomes False once the store reports no continuation.
    """

    @property
    @abstractmethod
    def has_more_results(self) -> bool:
        """Whether another page may be fetched."""

    @abstractmethod
    async def fetch_next_page(self) -> list[dict[str, Any]]:
        """Fetch the next page of documents."""


class DocumentStore(ABC):
    """Partitioned document store consumed by the stream protocol."""

    async def initialize(self) -> None:
        """Open connections and ensure schema/containers exist."""

    async def close(self) -> None:
        """Release connections."""

    async def __aenter__(self) -> DocumentStore:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @abstractmethod
    async def read_document(self, document_id: str, partition_key: str) -> dict[str, Any] | None:
        """Point read. Returns None when the document does not exist."""

    @abstractmethod
    async def create_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        """Create a document.

        Raises:
            DocumentConflictError: A document with the same id exists
        """

    @abstractmethod
    async def replace_document(
        self,
        document: dict[str, Any],
        partition_key: str,
        etag: str,
    ) -> dict[str, Any]:
        """Replace a document only if its current token equals ``etag``.

        Raises:
            DocumentConflictError: The stored document has a different token
            DocumentNotFoundError: The document does not exist
        """

    @abstractmethod
    async def upsert_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        """Create or unconditionally overwrite a document."""

    @abstractmethod
    def query_documents(
        self,
        partition_key: str,
        document_filter: DocumentFilter,
        descending: bool = True,
        page_size: int = 100,
    ) -> DocumentQuery:
        """Start a query ordered by ``sort_order``. No I/O happens until a page is fetched."""
