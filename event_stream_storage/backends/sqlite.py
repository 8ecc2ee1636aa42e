"""
SQLite document store.

Stores stream documents in a single table keyed by (partition_key, id), with
the filterable fields (stream_id, type, deleted, version, sort_order) in
their own columns and the full document as JSON. Ideal for embedded
applications, local development and testing against a real database.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosqlite

from ..documents import (
    FIELD_DELETED,
    FIELD_ETAG,
    FIELD_ID,
    FIELD_SORT_ORDER,
    FIELD_STREAM_ID,
    FIELD_TYPE,
    FIELD_VERSION,
)
from ..exceptions import (
    DocumentConflictError,
    DocumentNotFoundError,
    StorageConnectionError,
    StorageIOError,
    ValidationError,
)
from .base import DocumentFilter, DocumentQuery, DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "stream_documents"


@dataclass
class SQLiteConfig:
    """Configuration for SQLite storage."""

    db_path: str | Path = ":memory:"
    table_name: str = DEFAULT_TABLE

    def __post_init__(self) -> None:
        # Table name is interpolated into SQL
        if not self.table_name.replace("_", "").isalnum():
            raise ValidationError("table_name", "must be alphanumeric/underscore", self.table_name)

    @classmethod
    def from_env(cls) -> SQLiteConfig:
        """Create config from environment variables."""
        import os

        return cls(
            db_path=os.environ.get("EVENT_STORE_SQLITE_PATH", ":memory:"),
            table_name=os.environ.get("EVENT_STORE_SQLITE_TABLE", DEFAULT_TABLE),
        )


class SQLiteDocumentQuery(DocumentQuery):
    """Keyset-paginated query over the documents table."""

    def __init__(
        self,
        store: SQLiteDocumentStore,
        partition_key: str,
        document_filter: DocumentFilter,
        descending: bool,
        page_size: int,
    ):
        self._store = store
        self._partition_key = partition_key
        self._filter = document_filter
        self._descending = descending
        self._page_size = page_size
        self._cursor: tuple[float, str] | None = None
        self._has_more = True

    @property
    def has_more_results(self) -> bool:
        return self._has_more

    def _build_sql(self) -> tuple[str, list[Any]]:
        conditions = ["partition_key = ?", "stream_id = ?"]
        params: list[Any] = [self._partition_key, self._filter.stream_id]

        if self._filter.document_type is not None:
            conditions.append("type = ?")
            params.append(self._filter.document_type.value)

        if self._filter.deleted is not None:
            conditions.append("deleted = ?")
            params.append(int(self._filter.deleted))

        if self._filter.version_lt is not None:
            conditions.append("version < ?")
            params.append(self._filter.version_lt)

        cmp = "<" if self._descending else ">"
        if self._cursor is not None:
            sort_order, doc_id = self._cursor
            conditions.append(f"(sort_order {cmp} ? OR (sort_order = ? AND id {cmp} ?))")
            params.extend([sort_order, sort_order, doc_id])

        direction = "DESC" if self._descending else "ASC"
        sql = f"""
            SELECT body, etag FROM {self._store.config.table_name}
            WHERE {" AND ".join(conditions)}
            ORDER BY sort_order {direction}, id {direction}
            LIMIT ?
        """
        # One extra row tells us whether another page exists
        params.append(self._page_size + 1)
        return sql, params

    async def fetch_next_page(self) -> list[dict[str, Any]]:
        if not self._has_more:
            return []

        sql, params = self._build_sql()
        rows = await self._store._fetchall(sql, params, "query_documents")

        self._has_more = len(rows) > self._page_size
        page = [_row_to_document(row) for row in rows[: self._page_size]]
        if page:
            self._cursor = (page[-1][FIELD_SORT_ORDER], page[-1][FIELD_ID])
        return page


def _row_to_document(row: Any) -> dict[str, Any]:
    doc = json.loads(row[0])
    doc[FIELD_ETAG] = row[1]
    return doc


class SQLiteDocumentStore(DocumentStore):
    """
    SQLite-backed DocumentStore.

    Features:
    - Single file (or in-memory) database
    - Etag column guarding conditional replaces
    - Index on (partition_key, stream_id, sort_order) for stream scans
    """

    def __init__(self, config: SQLiteConfig | None = None):
        self.config = config or SQLiteConfig()
        self.conn: aiosqlite.Connection | None = None
        self._initialized = False

    @classmethod
    async def create(cls, config: SQLiteConfig | None = None) -> SQLiteDocumentStore:
        """Create and initialize a SQLite document store."""
        if config is None:
            config = SQLiteConfig.from_env()

        store = cls(config)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Open the connection and create the documents table."""
        if self._initialized:
            return

        try:
            # Autocommit: every statement is its own transaction
            self.conn = await aiosqlite.connect(str(self.config.db_path), isolation_level=None)
            table = self.config.table_name
            await self.conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    partition_key TEXT NOT NULL,
                    id TEXT NOT NULL,
                    stream_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    sort_order REAL NOT NULL,
                    deleted INTEGER NOT NULL DEFAULT 0,
                    version INTEGER NOT NULL,
                    etag TEXT NOT NULL,
                    body TEXT NOT NULL,
                    PRIMARY KEY (partition_key, id)
                )
            """)
            await self.conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{table}_stream "
                f"ON {table}(partition_key, stream_id, sort_order)"
            )
            self._initialized = True
            logger.info(f"SQLite document store initialized: {self.config.db_path}")
        except sqlite3.Error as e:
            raise StorageConnectionError(str(self.config.db_path), e) from e

    async def close(self) -> None:
        """Close the SQLite connection."""
        if self.conn is not None:
            await self.conn.close()
            self.conn = None
            self._initialized = False

    def _require_conn(self) -> aiosqlite.Connection:
        if self.conn is None:
            raise StorageIOError("sqlite", cause=RuntimeError("Store not initialized"))
        return self.conn

    async def _fetchall(self, sql: str, params: list[Any], operation: str) -> list[Any]:
        conn = self._require_conn()
        try:
            async with conn.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except sqlite3.Error as e:
            raise StorageIOError(operation, str(self.config.db_path), e) from e

    async def _write(self, sql: str, params: list[Any], operation: str) -> int:
        """Execute a write, returning the affected row count.

        IntegrityError is re-raised untouched so callers can map it.
        """
        conn = self._require_conn()
        try:
            async with conn.execute(sql, params) as cursor:
                return cursor.rowcount
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            raise StorageIOError(operation, str(self.config.db_path), e) from e

    @staticmethod
    def _columns(document: dict[str, Any], partition_key: str, etag: str) -> list[Any]:
        body = {k: v for k, v in document.items() if k != FIELD_ETAG}
        return [
            partition_key,
            document[FIELD_ID],
            document[FIELD_STREAM_ID],
            document[FIELD_TYPE],
            document[FIELD_SORT_ORDER],
            int(bool(document.get(FIELD_DELETED, False))),
            document.get(FIELD_VERSION, 0),
            etag,
            json.dumps(body),
        ]

    @staticmethod
    def _with_etag(document: dict[str, Any], etag: str) -> dict[str, Any]:
        stored = dict(document)
        stored[FIELD_ETAG] = etag
        return stored

    async def read_document(self, document_id: str, partition_key: str) -> dict[str, Any] | None:
        rows = await self._fetchall(
            f"SELECT body, etag FROM {self.config.table_name} WHERE partition_key = ? AND id = ?",
            [partition_key, document_id],
            "read_document",
        )
        return _row_to_document(rows[0]) if rows else None

    async def create_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        etag = uuid.uuid4().hex
        try:
            await self._write(
                f"INSERT INTO {self.config.table_name} "
                "(partition_key, id, stream_id, type, sort_order, deleted, version, etag, body) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._columns(document, partition_key, etag),
                "create_document",
            )
        except sqlite3.IntegrityError as e:
            raise DocumentConflictError(document[FIELD_ID], partition_key, "already exists") from e
        return self._with_etag(document, etag)

    async def replace_document(
        self,
        document: dict[str, Any],
        partition_key: str,
        etag: str,
    ) -> dict[str, Any]:
        new_etag = uuid.uuid4().hex
        columns = self._columns(document, partition_key, new_etag)
        updated = await self._write(
            f"UPDATE {self.config.table_name} SET stream_id = ?, type = ?, sort_order = ?, "
            "deleted = ?, version = ?, etag = ?, body = ? "
            "WHERE partition_key = ? AND id = ? AND etag = ?",
            columns[2:] + [partition_key, document[FIELD_ID], etag],
            "replace_document",
        )
        if updated == 0:
            if await self.read_document(document[FIELD_ID], partition_key) is None:
                raise DocumentNotFoundError(document[FIELD_ID], partition_key)
            raise DocumentConflictError(document[FIELD_ID], partition_key, "etag mismatch")
        return self._with_etag(document, new_etag)

    async def upsert_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        etag = uuid.uuid4().hex
        await self._write(
            f"INSERT INTO {self.config.table_name} "
            "(partition_key, id, stream_id, type, sort_order, deleted, version, etag, body) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(partition_key, id) DO UPDATE SET "
            "stream_id = excluded.stream_id, type = excluded.type, "
            "sort_order = excluded.sort_order, deleted = excluded.deleted, "
            "version = excluded.version, etag = excluded.etag, body = excluded.body",
            self._columns(document, partition_key, etag),
            "upsert_document",
        )
        return self._with_etag(document, etag)

    def query_documents(
        self,
        partition_key: str,
        document_filter: DocumentFilter,
        descending: bool = True,
        page_size: int = 100,
    ) -> SQLiteDocumentQuery:
        return SQLiteDocumentQuery(self, partition_key, document_filter, descending, page_size)
