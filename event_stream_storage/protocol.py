"""
Core value types exchanged with callers of the event store.

These are the decoded, caller-facing shapes. The stored shapes live in
documents.py.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class EventData:
    """An event to append, or an event read back from a stream.

    Attributes:
        version: Position of the event in its stream, assigned by the caller
        body: Event payload (plain JSON value or a registered payload class)
    """

    version: int
    body: Any


@dataclass
class Snapshot:
    """Stream state captured at a version."""

    version: int
    body: Any
    metadata: Any = None


@dataclass
class Stream:
    """A stream reconstructed from its documents.

    ``events`` only holds events newer than ``snapshot`` when one was found.
    ``version`` always comes from the header, never from counting events.
    """

    stream_id: str
    version: int
    metadata: Any = None
    events: list[EventData] = field(default_factory=list)
    snapshot: Snapshot | None = None


@dataclass
class StreamConsistencyReport:
    """Comparison of a stream's declared version with its stored events.

    A header commit that was not followed by all of its events leaves
    ``declared_version`` ahead of ``event_count``.
    """

    stream_id: str
    declared_version: int
    event_count: int
    highest_event_version: int | None
    deleted_event_count: int = 0

    @property
    def missing_events(self) -> int:
        return max(self.declared_version - self.event_count, 0)

    @property
    def is_consistent(self) -> bool:
        return self.declared_version == self.event_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and tooling output."""
        return {
            "stream_id": self.stream_id,
            "declared_version": self.declared_version,
            "event_count": self.event_count,
            "highest_event_version": self.highest_event_version,
            "deleted_event_count": self.deleted_event_count,
            "missing_events": self.missing_events,
            "is_consistent": self.is_consistent,
        }
