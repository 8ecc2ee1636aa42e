"""
Stream writer.

Appends events under optimistic concurrency. The header is committed first
(conditional create for a new stream, etag-guarded replace otherwise), then
each event document is created in order. There is no transaction spanning
the two: if an event write fails, the header already declares the new
version and PartialWriteError reports how far the write got.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..backends.base import DocumentStore
from ..codecs import CodecRegistry
from ..config import EventStoreConfig
from ..documents import StreamDocument, header_id
from ..exceptions import (
    DocumentConflictError,
    OptimisticConcurrencyError,
    PartialWriteError,
    StreamAlreadyExistsError,
    StreamNotFoundError,
    ValidationError,
)
from ..protocol import EventData

logger = logging.getLogger(__name__)


def validate_events(events: Sequence[EventData]) -> None:
    """Check event versions are non-negative and strictly increasing."""
    previous: int | None = None
    for index, event in enumerate(events):
        if not isinstance(event, EventData):
            raise ValidationError(f"events[{index}]", "must be EventData")
        if isinstance(event.version, bool) or not isinstance(event.version, int):
            raise ValidationError(f"events[{index}].version", "must be an integer")
        if event.version < 0:
            raise ValidationError(f"events[{index}].version", "must be >= 0", str(event.version))
        if previous is not None and event.version <= previous:
            raise ValidationError(
                f"events[{index}].version",
                f"must be greater than previous version {previous}",
                str(event.version),
            )
        previous = event.version


class StreamWriter:
    """Writes events and headers to a DocumentStore."""

    def __init__(self, store: DocumentStore, config: EventStoreConfig, codecs: CodecRegistry):
        self.store = store
        self.config = config
        self.codecs = codecs

    async def write_to_stream(
        self,
        stream_id: str,
        events: Sequence[EventData],
        expected_version: int | None = None,
        metadata: Any = None,
    ) -> None:
        """Append events to a stream.

        Args:
            stream_id: Stream to write
            events: Events with caller-assigned, strictly increasing versions
            expected_version: Current version of an existing stream, or None
                to create a new stream
            metadata: Replaces the header metadata when given

        Raises:
            StreamNotFoundError: expected_version given but the stream is
                missing or deleted
            OptimisticConcurrencyError: The stream is not at expected_version
            StreamAlreadyExistsError: New stream requested but it exists
            PartialWriteError: Header committed but an event write failed
        """
        validate_events(events)
        partition_key = self.config.partition_key_for(stream_id)

        if expected_version is not None:
            raw = await self.store.read_document(header_id(stream_id), partition_key)
            if raw is None:
                raise StreamNotFoundError(stream_id)
            header = StreamDocument.from_dict(raw)
            if header.deleted:
                raise StreamNotFoundError(stream_id)
            if header.version != expected_version:
                raise OptimisticConcurrencyError(stream_id, expected_version, header.version)
        else:
            header = StreamDocument.new_header(stream_id, partition_key)

        header.body.version += len(events)

        if metadata is not None:
            header.body.metadata_type, header.body.metadata = self.codecs.encode(metadata)

        # Encode everything before the first write so codec errors leave no trace
        event_documents = []
        for event in events:
            body_type, body = self.codecs.encode(event.body)
            event_documents.append(
                StreamDocument.new_event(stream_id, partition_key, event.version, body, body_type)
            )

        await self._commit_header(header, expected_version)

        persisted = 0
        for document in event_documents:
            try:
                await self.store.create_document(document.to_dict(), partition_key)
            except Exception as e:
                logger.warning(
                    f"Partial write to {stream_id}: header at {header.version}, "
                    f"{persisted}/{len(event_documents)} events persisted",
                    extra={"stream_id": stream_id},
                )
                raise PartialWriteError(
                    stream_id, header.version, persisted, len(event_documents), e
                ) from e
            persisted += 1

        logger.debug(f"Wrote {persisted} events to {stream_id}, version={header.version}")

    async def _commit_header(self, header: StreamDocument, expected_version: int | None) -> None:
        stream_id = header.stream_id
        if expected_version is None:
            try:
                await self.store.create_document(header.to_dict(), header.partition_key)
            except DocumentConflictError as e:
                raise StreamAlreadyExistsError(stream_id) from e
            logger.info(f"Created stream {stream_id}", extra={"stream_id": stream_id})
            return

        try:
            await self.store.replace_document(header.to_dict(), header.partition_key, header.etag)
        except DocumentConflictError as e:
            # Lost the race between our read and our replace
            logger.warning(
                f"Header of {stream_id} changed after read at version {expected_version}",
                extra={"stream_id": stream_id},
            )
            raise OptimisticConcurrencyError(stream_id, expected_version, None) from e
