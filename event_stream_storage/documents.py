"""
Stream document model.

A stream is stored as a set of documents sharing one partition:

- one header document (current version + metadata, stream-level delete flag)
- one event document per appended event
- zero or more snapshot documents

Every document carries the same common fields; the variant-specific fields
live in a body discriminated by ``type``. Serialized documents are flat JSON
objects so that stores can filter on ``stream_id``, ``type``, ``deleted`` and
``version`` directly.

Ordering: ``sort_order`` places the header after every event and snapshot of
the stream, and a snapshot after the event with the same version, so a
descending scan yields header, newer events, then the newest snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DocumentType(Enum):
    """Document type discriminator."""

    HEADER = "header"
    EVENT = "event"
    SNAPSHOT = "snapshot"


# Serialized field names
FIELD_ID = "id"
FIELD_STREAM_ID = "stream_id"
FIELD_PARTITION_KEY = "partition_key"
FIELD_TYPE = "type"
FIELD_SORT_ORDER = "sort_order"
FIELD_DELETED = "deleted"
FIELD_VERSION = "version"
FIELD_ETAG = "_etag"


# Joins stream id and version in event and snapshot ids; never valid in a stream id
ID_SEPARATOR = "~"


def header_id(stream_id: str) -> str:
    return stream_id


def event_id(stream_id: str, version: int) -> str:
    return f"{stream_id}{ID_SEPARATOR}{version}"


def snapshot_id(stream_id: str, version: int) -> str:
    return f"{stream_id}{ID_SEPARATOR}{version}{ID_SEPARATOR}S"


# =============================================================================
# Variant bodies
# =============================================================================


@dataclass
class HeaderBody:
    """Per-stream header fields."""

    version: int = 0
    metadata: Any = None
    metadata_type: str | None = None

    @property
    def sort_order(self) -> float:
        return float(self.version + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "metadata": self.metadata,
            "metadata_type": self.metadata_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HeaderBody:
        return cls(
            version=int(data.get("version", 0)),
            metadata=data.get("metadata"),
            metadata_type=data.get("metadata_type"),
        )


@dataclass
class EventBody:
    """A single appended event."""

    version: int
    body: Any
    body_type: str

    @property
    def sort_order(self) -> float:
        return float(self.version)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "body": self.body, "body_type": self.body_type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventBody:
        return cls(
            version=int(data["version"]),
            body=data.get("body"),
            body_type=data.get("body_type", ""),
        )


@dataclass
class SnapshotBody:
    """Stream state captured at a version."""

    version: int
    body: Any
    body_type: str
    metadata: Any = None
    metadata_type: str | None = None

    @property
    def sort_order(self) -> float:
        return self.version + 0.5

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "body": self.body,
            "body_type": self.body_type,
            "metadata": self.metadata,
            "metadata_type": self.metadata_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotBody:
        return cls(
            version=int(data["version"]),
            body=data.get("body"),
            body_type=data.get("body_type", ""),
            metadata=data.get("metadata"),
            metadata_type=data.get("metadata_type"),
        )


_BODY_TYPES: dict[DocumentType, Any] = {
    DocumentType.HEADER: HeaderBody,
    DocumentType.EVENT: EventBody,
    DocumentType.SNAPSHOT: SnapshotBody,
}


# =============================================================================
# Document
# =============================================================================


@dataclass
class StreamDocument:
    """One stored document of a stream.

    ``etag`` is the store's opaque concurrency token. It is None for
    documents that have not been written yet and is never interpreted here.
    """

    stream_id: str
    partition_key: str
    document_type: DocumentType
    body: HeaderBody | EventBody | SnapshotBody
    deleted: bool = False
    etag: str | None = field(default=None, compare=False)

    @property
    def id(self) -> str:
        if self.document_type is DocumentType.HEADER:
            return header_id(self.stream_id)
        if self.document_type is DocumentType.EVENT:
            return event_id(self.stream_id, self.body.version)
        return snapshot_id(self.stream_id, self.body.version)

    @property
    def version(self) -> int:
        return self.body.version

    @property
    def sort_order(self) -> float:
        return self.body.sort_order

    @property
    def is_header(self) -> bool:
        return self.document_type is DocumentType.HEADER

    @property
    def is_event(self) -> bool:
        return self.document_type is DocumentType.EVENT

    @property
    def is_snapshot(self) -> bool:
        return self.document_type is DocumentType.SNAPSHOT

    # Constructors -------------------------------------------------------------

    @classmethod
    def new_header(cls, stream_id: str, partition_key: str) -> StreamDocument:
        return cls(stream_id, partition_key, DocumentType.HEADER, HeaderBody())

    @classmethod
    def new_event(
        cls, stream_id: str, partition_key: str, version: int, body: Any, body_type: str
    ) -> StreamDocument:
        return cls(stream_id, partition_key, DocumentType.EVENT, EventBody(version, body, body_type))

    @classmethod
    def new_snapshot(
        cls,
        stream_id: str,
        partition_key: str,
        version: int,
        body: Any,
        body_type: str,
        metadata: Any = None,
        metadata_type: str | None = None,
    ) -> StreamDocument:
        return cls(
            stream_id,
            partition_key,
            DocumentType.SNAPSHOT,
            SnapshotBody(version, body, body_type, metadata, metadata_type),
        )

    # Serialization ------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat document written to the store.

        The etag is not included; stores manage it themselves.
        """
        doc = {
            FIELD_ID: self.id,
            FIELD_STREAM_ID: self.stream_id,
            FIELD_PARTITION_KEY: self.partition_key,
            FIELD_TYPE: self.document_type.value,
            FIELD_SORT_ORDER: self.sort_order,
            FIELD_DELETED: self.deleted,
        }
        doc.update(self.body.to_dict())
        return doc

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StreamDocument:
        """Parse a document read from the store."""
        document_type = DocumentType(data[FIELD_TYPE])
        body = _BODY_TYPES[document_type].from_dict(data)
        return cls(
            stream_id=data[FIELD_STREAM_ID],
            partition_key=data[FIELD_PARTITION_KEY],
            document_type=document_type,
            body=body,
            deleted=bool(data.get(FIELD_DELETED, False)),
            etag=data.get(FIELD_ETAG),
        )
