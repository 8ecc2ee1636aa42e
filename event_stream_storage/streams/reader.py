"""
Stream reader.

Rebuilds a stream from its documents with a single newest-first scan:

1. The header comes first. A deleted header means the stream is gone.
2. Events newer than the latest snapshot follow; deleted documents are skipped.
3. The first live snapshot ends the scan, since every older event is
   already folded into it.

Pages are pulled lazily, so a stream with a recent snapshot costs one or two
pages regardless of its length.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from ..backends.base import DocumentFilter, DocumentQuery, DocumentStore
from ..codecs import CodecRegistry
from ..config import EventStoreConfig
from ..documents import StreamDocument
from ..exceptions import StreamNotFoundError
from ..protocol import EventData, Snapshot, Stream

logger = logging.getLogger(__name__)


async def iterate_documents(query: DocumentQuery) -> AsyncIterator[dict[str, Any]]:
    """Yield documents from a paginated query, fetching pages on demand.

    Stops fetching as soon as the consumer stops pulling.
    """
    while query.has_more_results:
        for document in await query.fetch_next_page():
            yield document


class StreamReader:
    """Reads streams from a DocumentStore."""

    def __init__(self, store: DocumentStore, config: EventStoreConfig, codecs: CodecRegistry):
        self.store = store
        self.config = config
        self.codecs = codecs

    async def read_stream(self, stream_id: str) -> Stream:
        """Reconstruct a stream's current state.

        Raises:
            StreamNotFoundError: No documents, no header, or a deleted header
        """
        partition_key = self.config.partition_key_for(stream_id)
        query = self.store.query_documents(
            partition_key,
            DocumentFilter(stream_id=stream_id),
            descending=True,
            page_size=self.config.page_size,
        )

        header: StreamDocument | None = None
        events: list[StreamDocument] = []
        snapshot: StreamDocument | None = None
        scanned = 0

        async with aclosing(iterate_documents(query)) as documents:
            async for raw in documents:
                scanned += 1
                document = StreamDocument.from_dict(raw)

                if document.is_header and document.deleted:
                    raise StreamNotFoundError(stream_id)

                if document.deleted:
                    continue

                if document.is_header:
                    header = document
                elif document.is_event:
                    events.append(document)
                else:
                    snapshot = document
                    break

        if header is None:
            raise StreamNotFoundError(stream_id)

        logger.debug(
            f"Read stream {stream_id}: version={header.version}, scanned={scanned}, "
            f"events={len(events)}, snapshot={snapshot.version if snapshot else None}"
        )

        return Stream(
            stream_id=stream_id,
            version=header.version,
            metadata=self.codecs.decode(header.body.metadata_type, header.body.metadata),
            events=[self._to_event(document) for document in reversed(events)],
            snapshot=self._to_snapshot(snapshot) if snapshot else None,
        )

    def _to_event(self, document: StreamDocument) -> EventData:
        body = document.body
        return EventData(version=body.version, body=self.codecs.decode(body.body_type, body.body))

    def _to_snapshot(self, document: StreamDocument) -> Snapshot:
        body = document.body
        return Snapshot(
            version=body.version,
            body=self.codecs.decode(body.body_type, body.body),
            metadata=self.codecs.decode(body.metadata_type, body.metadata),
        )
