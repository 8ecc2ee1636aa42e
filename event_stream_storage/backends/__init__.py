"""
Document store backends.

Provides the DocumentStore interface consumed by the stream protocol and
its implementations (in-memory, SQLite, Cosmos DB). Each backend implements
the same interface, allowing seamless switching.
"""

from .base import DocumentFilter, DocumentQuery, DocumentStore
from .memory import InMemoryDocumentStore
from .sqlite import SQLiteConfig, SQLiteDocumentStore

__all__ = [
    # Interfaces
    "DocumentStore",
    "DocumentQuery",
    "DocumentFilter",
    # Implementations
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "SQLiteConfig",
]
