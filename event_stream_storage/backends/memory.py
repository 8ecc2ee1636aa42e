"""
In-memory document store.

Keeps documents in a dict keyed by (partition_key, id). Useful for tests,
local development, and as the reference behaviour for the DocumentStore
contract: every write gets a fresh etag, replace is guarded by it, and
queries page through results with a keyset cursor so concurrent writes
between pages behave like they do on a real store.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any

from ..documents import FIELD_ETAG, FIELD_ID, FIELD_SORT_ORDER
from ..exceptions import DocumentConflictError, DocumentNotFoundError
from .base import DocumentFilter, DocumentQuery, DocumentStore

logger = logging.getLogger(__name__)


def _sort_key(document: dict[str, Any]) -> tuple[float, str]:
    return (document[FIELD_SORT_ORDER], document[FIELD_ID])


class InMemoryDocumentQuery(DocumentQuery):
    """Keyset-paginated query over an InMemoryDocumentStore partition."""

    def __init__(
        self,
        store: InMemoryDocumentStore,
        partition_key: str,
        document_filter: DocumentFilter,
        descending: bool,
        page_size: int,
    ):
        self._store = store
        self._partition_key = partition_key
        self._filter = document_filter
        self._descending = descending
        self._page_size = page_size
        self._cursor: tuple[float, str] | None = None
        self._has_more = True

    @property
    def has_more_results(self) -> bool:
        return self._has_more

    async def fetch_next_page(self) -> list[dict[str, Any]]:
        if not self._has_more:
            return []

        self._store.query_page_count += 1
        candidates = [
            doc
            for (pk, _), doc in self._store.documents.items()
            if pk == self._partition_key and self._filter.matches(doc)
        ]
        candidates.sort(key=_sort_key, reverse=self._descending)

        if self._cursor is not None:
            if self._descending:
                candidates = [d for d in candidates if _sort_key(d) < self._cursor]
            else:
                candidates = [d for d in candidates if _sort_key(d) > self._cursor]

        page = candidates[: self._page_size]
        self._has_more = len(candidates) > self._page_size
        if page:
            self._cursor = _sort_key(page[-1])
        return [copy.deepcopy(doc) for doc in page]


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore backed by a Python dict.

    Attributes:
        documents: Stored documents keyed by (partition_key, id)
        query_page_count: Number of query pages fetched, for observing
            early termination in tests and diagnostics
    """

    def __init__(self) -> None:
        self.documents: dict[tuple[str, str], dict[str, Any]] = {}
        self.query_page_count = 0

    def _store(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        stored = copy.deepcopy(document)
        stored[FIELD_ETAG] = uuid.uuid4().hex
        self.documents[(partition_key, stored[FIELD_ID])] = stored
        return copy.deepcopy(stored)

    async def read_document(self, document_id: str, partition_key: str) -> dict[str, Any] | None:
        doc = self.documents.get((partition_key, document_id))
        return copy.deepcopy(doc) if doc is not None else None

    async def create_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        key = (partition_key, document[FIELD_ID])
        if key in self.documents:
            raise DocumentConflictError(document[FIELD_ID], partition_key, "already exists")
        return self._store(document, partition_key)

    async def replace_document(
        self,
        document: dict[str, Any],
        partition_key: str,
        etag: str,
    ) -> dict[str, Any]:
        existing = self.documents.get((partition_key, document[FIELD_ID]))
        if existing is None:
            raise DocumentNotFoundError(document[FIELD_ID], partition_key)
        if existing[FIELD_ETAG] != etag:
            raise DocumentConflictError(document[FIELD_ID], partition_key, "etag mismatch")
        return self._store(document, partition_key)

    async def upsert_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        return self._store(document, partition_key)

    def query_documents(
        self,
        partition_key: str,
        document_filter: DocumentFilter,
        descending: bool = True,
        page_size: int = 100,
    ) -> InMemoryDocumentQuery:
        logger.debug(f"In-memory query on {partition_key}: {document_filter}")
        return InMemoryDocumentQuery(self, partition_key, document_filter, descending, page_size)
