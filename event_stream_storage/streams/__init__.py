"""
Stream protocol over a document store.

Reader, writer and deletion manager share one DocumentStore, one
EventStoreConfig and one CodecRegistry; EventStore composes them.
"""

from .deletion import DeletionManager
from .reader import StreamReader, iterate_documents
from .reconcile import inspect_stream
from .writer import StreamWriter, validate_events

__all__ = [
    "StreamReader",
    "StreamWriter",
    "DeletionManager",
    "inspect_stream",
    "iterate_documents",
    "validate_events",
]
