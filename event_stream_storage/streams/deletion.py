"""
Stream and snapshot deletion.

Nothing is physically removed; documents are flagged ``deleted`` and become
invisible to readers.

- Hard delete flags only the header. Events and snapshots stay stored but
  can no longer be reached.
- Soft delete flags the header, then every remaining document of the stream,
  one independent write each. A crash midway leaves some documents unflagged,
  but the stream already reads as not found.

Snapshots are created here too, since snapshot pruning shares the header
checks and the flag-flipping writes.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Any

from ..backends.base import DocumentFilter, DocumentStore
from ..codecs import CodecRegistry
from ..config import EventStoreConfig
from ..documents import DocumentType, StreamDocument, header_id
from ..exceptions import DocumentConflictError, OptimisticConcurrencyError, StreamNotFoundError
from .reader import iterate_documents

logger = logging.getLogger(__name__)


class DeletionManager:
    """Deletes streams and creates/prunes snapshots."""

    def __init__(self, store: DocumentStore, config: EventStoreConfig, codecs: CodecRegistry):
        self.store = store
        self.config = config
        self.codecs = codecs

    async def _read_live_header(self, stream_id: str) -> StreamDocument:
        raw = await self.store.read_document(
            header_id(stream_id), self.config.partition_key_for(stream_id)
        )
        if raw is None:
            raise StreamNotFoundError(stream_id)
        header = StreamDocument.from_dict(raw)
        if header.deleted:
            raise StreamNotFoundError(stream_id)
        return header

    # =========================================================================
    # Stream deletion
    # =========================================================================

    async def delete_stream(self, stream_id: str, expected_version: int) -> None:
        """Delete a stream using the configured delete mode.

        Raises:
            StreamNotFoundError: Stream missing or already deleted
            OptimisticConcurrencyError: Stream not at expected_version
        """
        header = await self._read_live_header(stream_id)
        if header.version != expected_version:
            raise OptimisticConcurrencyError(stream_id, expected_version, header.version)

        header.deleted = True
        try:
            await self.store.replace_document(header.to_dict(), header.partition_key, header.etag)
        except DocumentConflictError as e:
            raise OptimisticConcurrencyError(stream_id, expected_version, None) from e

        if self.config.hard_delete:
            logger.info(f"Hard-deleted stream {stream_id}", extra={"stream_id": stream_id})
            return

        flipped = await self._flag_remaining_documents(stream_id, header.partition_key)
        logger.info(
            f"Soft-deleted stream {stream_id}: {flipped + 1} documents flagged",
            extra={"stream_id": stream_id},
        )

    async def _flag_remaining_documents(self, stream_id: str, partition_key: str) -> int:
        query = self.store.query_documents(
            partition_key,
            DocumentFilter(stream_id=stream_id, deleted=False),
            page_size=self.config.page_size,
        )
        flipped = 0
        async with aclosing(iterate_documents(query)) as documents:
            async for raw in documents:
                document = StreamDocument.from_dict(raw)
                document.deleted = True
                await self.store.upsert_document(document.to_dict(), partition_key)
                flipped += 1
        return flipped

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def create_snapshot(
        self,
        stream_id: str,
        version: int,
        snapshot: Any,
        metadata: Any = None,
        delete_older_snapshots: bool = False,
    ) -> None:
        """Store a snapshot of a stream at ``version``.

        Re-snapshotting the same version overwrites the previous snapshot.

        Raises:
            StreamNotFoundError: Stream missing or deleted
            OptimisticConcurrencyError: ``version`` is ahead of the stream
        """
        header = await self._read_live_header(stream_id)
        if header.version < version:
            raise OptimisticConcurrencyError(stream_id, version, header.version)

        body_type, body = self.codecs.encode(snapshot)
        metadata_type, metadata_body = (
            self.codecs.encode(metadata) if metadata is not None else (None, None)
        )
        document = StreamDocument.new_snapshot(
            stream_id,
            header.partition_key,
            version,
            body,
            body_type,
            metadata_body,
            metadata_type,
        )
        await self.store.upsert_document(document.to_dict(), header.partition_key)
        logger.info(f"Snapshot of {stream_id} at version {version}", extra={"stream_id": stream_id})

        if delete_older_snapshots:
            await self.delete_snapshots(stream_id, version)

    async def delete_snapshots(self, stream_id: str, older_than_version: int) -> None:
        """Flag every live snapshot with version < ``older_than_version`` as deleted.

        The flips run concurrently, in no particular order.

        Raises:
            StreamNotFoundError: Stream missing or deleted
        """
        header = await self._read_live_header(stream_id)
        partition_key = header.partition_key

        query = self.store.query_documents(
            partition_key,
            DocumentFilter(
                stream_id=stream_id,
                document_type=DocumentType.SNAPSHOT,
                deleted=False,
                version_lt=older_than_version,
            ),
            page_size=self.config.page_size,
        )
        snapshots: list[StreamDocument] = []
        while query.has_more_results:
            snapshots.extend(StreamDocument.from_dict(raw) for raw in await query.fetch_next_page())

        async def flag(document: StreamDocument) -> None:
            document.deleted = True
            await self.store.upsert_document(document.to_dict(), partition_key)

        await asyncio.gather(*(flag(document) for document in snapshots))
        logger.info(
            f"Deleted {len(snapshots)} snapshots of {stream_id} older than {older_than_version}",
            extra={"stream_id": stream_id},
        )
