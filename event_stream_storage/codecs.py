"""
Payload codec registry.

Event, snapshot and metadata payloads are stored as a JSON value plus a type
tag. The registry maps caller-chosen tags to codecs, and Python classes to
their tag, so payloads are rebuilt without resolving types by name.

Plain JSON values (dict, list, str, numbers, bool, None) need no registration and
are stored under the ``json`` tag.

Usage:

    >>> registry = CodecRegistry()
    >>> registry.register("order-placed.v1", OrderPlaced)   # dataclass
    >>> tag, data = registry.encode(OrderPlaced(order_id="o-1", total=10))
    >>> registry.decode(tag, data)
    OrderPlaced(order_id='o-1', total=10)
"""

from __future__ import annotations

import dataclasses
import json
from abc import ABC, abstractmethod
from typing import Any

from .exceptions import CodecError

JSON_TYPE = "json"

_JSON_TYPES = (dict, list, str, int, float, bool, type(None))


class PayloadCodec(ABC):
    """Converts one payload type to and from a JSON-compatible value."""

    @abstractmethod
    def encode(self, value: Any) -> Any:
        """Convert a payload object into a JSON-compatible value."""

    @abstractmethod
    def decode(self, data: Any) -> Any:
        """Rebuild a payload object from its stored JSON value."""


class JsonCodec(PayloadCodec):
    """Pass-through codec for values that are already JSON."""

    def encode(self, value: Any) -> Any:
        return value

    def decode(self, data: Any) -> Any:
        return data


class DataclassCodec(PayloadCodec):
    """Codec for a dataclass whose fields are JSON-compatible."""

    def __init__(self, cls: type):
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls!r} is not a dataclass")
        self.cls = cls

    def encode(self, value: Any) -> Any:
        return dataclasses.asdict(value)

    def decode(self, data: Any) -> Any:
        if not isinstance(data, dict):
            raise CodecError(self.cls.__name__, f"expected an object, got {type(data).__name__}")
        try:
            return self.cls(**data)
        except TypeError as e:
            raise CodecError(self.cls.__name__, str(e)) from e


class CodecRegistry:
    """Explicit mapping of type tags to codecs.

    Args:
        strict: When True (default), decoding an unknown tag raises
            CodecError. When False, the stored JSON value is returned as-is.
    """

    def __init__(self, strict: bool = True):
        self.strict = strict
        self._codecs: dict[str, PayloadCodec] = {JSON_TYPE: JsonCodec()}
        self._tags: dict[type, str] = {}

    def register(self, type_tag: str, cls: type, codec: PayloadCodec | None = None) -> None:
        """Register a payload class under a type tag.

        Dataclasses get a DataclassCodec when no codec is given; any other
        class needs an explicit codec.
        """
        if not type_tag:
            raise ValueError("type_tag must be a non-empty string")
        if type_tag == JSON_TYPE:
            raise ValueError(f"'{JSON_TYPE}' is reserved for plain JSON values")
        if codec is None:
            codec = DataclassCodec(cls)
        self._codecs[type_tag] = codec
        self._tags[cls] = type_tag

    def type_tag_for(self, value: Any) -> str:
        tag = self._tags.get(type(value))
        if tag is not None:
            return tag
        if isinstance(value, _JSON_TYPES):
            return JSON_TYPE
        raise CodecError(type(value).__name__, "no codec registered for this type")

    def encode(self, value: Any) -> tuple[str, Any]:
        """Encode a payload, returning ``(type_tag, json_value)``."""
        tag = self.type_tag_for(value)
        data = self._codecs[tag].encode(value)
        # Nested values must be JSON too, not just the top level
        try:
            json.dumps(data)
        except (TypeError, ValueError) as e:
            raise CodecError(tag, f"encoded payload is not JSON: {e}") from e
        return tag, data

    def decode(self, type_tag: str | None, data: Any) -> Any:
        """Decode a stored payload by its tag. A None tag means no payload."""
        if type_tag is None:
            return data
        codec = self._codecs.get(type_tag)
        if codec is None:
            if self.strict:
                raise CodecError(type_tag, "unknown type tag")
            return data
        return codec.decode(data)

    def __contains__(self, type_tag: str) -> bool:
        return type_tag in self._codecs
