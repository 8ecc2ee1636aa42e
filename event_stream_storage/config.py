"""
Event store configuration.

Holds the options the stream protocol itself recognizes: an optional fixed
partition, the delete mode, and the query page size. Connection settings
(endpoint, key, database and container names, file path) live on the
backend config classes.

Configuration can be built directly, from environment variables, or from a
YAML settings file:

```yaml
event_store:
  partition: "tenant-a"      # Optional, defaults to one partition per stream
  delete_mode: "hard"        # "soft" (default) or "hard"
  page_size: 200
```
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ValidationError

DEFAULT_PAGE_SIZE = 100


class DeleteMode(Enum):
    """How delete_stream removes a stream."""

    SOFT = "soft"  # Flag every document of the stream as deleted
    HARD = "hard"  # Flag only the header; other documents become unreachable


@dataclass
class EventStoreConfig:
    """Configuration for an EventStore instance.

    Attributes:
        partition: Fixed partition key for every stream, or None to
            partition by stream id
        delete_mode: Soft or hard stream deletion
        page_size: Maximum documents fetched per query page
    """

    partition: str | None = None
    delete_mode: DeleteMode = DeleteMode.SOFT
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if isinstance(self.delete_mode, str):
            self.delete_mode = _parse_delete_mode(self.delete_mode)
        if self.partition == "":
            self.partition = None
        if self.page_size < 1:
            raise ValidationError("page_size", "must be at least 1", str(self.page_size))

    @property
    def hard_delete(self) -> bool:
        return self.delete_mode is DeleteMode.HARD

    def partition_key_for(self, stream_id: str) -> str:
        """Partition key used for every document of a stream."""
        return self.partition if self.partition is not None else stream_id

    @classmethod
    def from_env(cls) -> EventStoreConfig:
        """Create config from environment variables.

        Recognized variables:
        - EVENT_STORE_PARTITION
        - EVENT_STORE_DELETE_MODE ("soft" or "hard")
        - EVENT_STORE_PAGE_SIZE
        """
        page_size_str = os.environ.get("EVENT_STORE_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))
        try:
            page_size = int(page_size_str)
        except ValueError as e:
            raise ValidationError("page_size", "must be an integer", page_size_str) from e

        return cls(
            partition=os.environ.get("EVENT_STORE_PARTITION") or None,
            delete_mode=_parse_delete_mode(os.environ.get("EVENT_STORE_DELETE_MODE", "soft")),
            page_size=page_size,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> EventStoreConfig:
        """Create config from the ``event_store`` section of a YAML file.

        Missing keys fall back to defaults. A missing file is an error.
        """
        config_path = Path(path)
        try:
            content = config_path.read_text()
        except OSError as e:
            raise ValidationError("config_path", f"cannot read: {e}", str(config_path)) from e

        raw: dict[str, Any] = yaml.safe_load(content) or {}
        section = raw.get("event_store", {}) or {}
        if not isinstance(section, dict):
            raise ValidationError("event_store", "must be a mapping", str(config_path))

        page_size = section.get("page_size", DEFAULT_PAGE_SIZE)
        try:
            page_size = int(page_size)
        except (TypeError, ValueError) as e:
            raise ValidationError("page_size", "must be an integer", str(page_size)) from e

        return cls(
            partition=section.get("partition"),
            delete_mode=_parse_delete_mode(section.get("delete_mode", "soft")),
            page_size=page_size,
        )


def _parse_delete_mode(value: Any) -> DeleteMode:
    if not isinstance(value, str):
        raise ValidationError("delete_mode", "must be 'soft' or 'hard'", str(value))
    try:
        return DeleteMode(value.strip().lower())
    except ValueError as e:
        raise ValidationError("delete_mode", "must be 'soft' or 'hard'", value) from e
