"""
Consistency inspection for streams.

Writes commit the header before the events, so a failure between the two
leaves a stream whose declared version is ahead of the events actually
stored. inspect_stream surfaces that gap; it never repairs it.
"""

from __future__ import annotations

import logging

from ..backends.base import DocumentFilter, DocumentStore
from ..config import EventStoreConfig
from ..documents import DocumentType, StreamDocument, header_id
from ..exceptions import StreamNotFoundError
from ..protocol import StreamConsistencyReport

logger = logging.getLogger(__name__)


async def inspect_stream(
    store: DocumentStore, config: EventStoreConfig, stream_id: str
) -> StreamConsistencyReport:
    """Compare a stream's header version with its stored event documents.

    Raises:
        StreamNotFoundError: Stream missing or deleted
    """
    partition_key = config.partition_key_for(stream_id)
    raw = await store.read_document(header_id(stream_id), partition_key)
    if raw is None:
        raise StreamNotFoundError(stream_id)
    header = StreamDocument.from_dict(raw)
    if header.deleted:
        raise StreamNotFoundError(stream_id)

    query = store.query_documents(
        partition_key,
        DocumentFilter(stream_id=stream_id, document_type=DocumentType.EVENT),
        descending=False,
        page_size=config.page_size,
    )
    live = 0
    deleted = 0
    highest: int | None = None
    while query.has_more_results:
        for raw_event in await query.fetch_next_page():
            event = StreamDocument.from_dict(raw_event)
            if event.deleted:
                deleted += 1
                continue
            live += 1
            highest = event.version if highest is None else max(highest, event.version)

    report = StreamConsistencyReport(
        stream_id=stream_id,
        declared_version=header.version,
        event_count=live,
        highest_event_version=highest,
        deleted_event_count=deleted,
    )
    if not report.is_consistent:
        logger.warning(f"Stream {stream_id} is inconsistent", extra=report.to_dict())
    return report
