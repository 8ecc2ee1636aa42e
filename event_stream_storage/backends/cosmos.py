"""
Cosmos DB document store.

Implements DocumentStore on Azure Cosmos DB. All stream documents share one
container partitioned on ``/partition_key``; each document carries the
partition value itself, so creates and upserts need no extra routing.

Concurrency tokens are Cosmos ``_etag`` values. Conditional replace uses
``If-Match`` (MatchConditions.IfNotModified); a 412 becomes
DocumentConflictError, as does a 409 on create.

No retry policy is layered on top of the SDK's own transport policy: other
Cosmos errors are raised as StorageIOError with the original chained.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, AsyncIterator

from azure.core import MatchConditions
from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)
from azure.identity.aio import DefaultAzureCredential

from ..documents import FIELD_ID, FIELD_PARTITION_KEY
from ..exceptions import (
    AuthenticationError,
    DocumentConflictError,
    DocumentNotFoundError,
    StorageConnectionError,
    StorageIOError,
)
from .base import DocumentFilter, DocumentQuery, DocumentStore

logger = logging.getLogger(__name__)

PARTITION_KEY_PATH = f"/{FIELD_PARTITION_KEY}"

# Auth methods
AUTH_KEY = "key"
AUTH_DEFAULT_CREDENTIAL = "default_credential"


@dataclass
class CosmosConfig:
    """Configuration for Cosmos DB storage.

    Attributes:
        endpoint: Cosmos DB account endpoint URL
        database_name: Database holding the stream container
        container_name: Container holding stream documents
        auth_method: "key" or "default_credential"
        key: Account key, required for key auth
    """

    endpoint: str
    database_name: str = "event-store"
    container_name: str = "streams"
    auth_method: str = AUTH_DEFAULT_CREDENTIAL
    key: str | None = None

    @classmethod
    def from_env(cls) -> CosmosConfig:
        """Create config from environment variables.

        Expected environment variables:
        - EVENT_STORE_COSMOS_ENDPOINT: Cosmos DB account endpoint
        - EVENT_STORE_COSMOS_DATABASE: Database name (default: event-store)
        - EVENT_STORE_COSMOS_CONTAINER: Container name (default: streams)
        - EVENT_STORE_COSMOS_AUTH_METHOD: "key" or "default_credential"
        - EVENT_STORE_COSMOS_KEY: Account key (key auth only)

        Raises:
            AuthenticationError: If required environment variables are missing
        """
        endpoint = os.environ.get("EVENT_STORE_COSMOS_ENDPOINT")
        auth_method = os.environ.get("EVENT_STORE_COSMOS_AUTH_METHOD", AUTH_DEFAULT_CREDENTIAL)
        key = os.environ.get("EVENT_STORE_COSMOS_KEY")

        if not endpoint:
            raise AuthenticationError("cosmos", "EVENT_STORE_COSMOS_ENDPOINT not set")

        if auth_method == AUTH_KEY and not key:
            raise AuthenticationError("cosmos", "EVENT_STORE_COSMOS_KEY required for key auth")

        return cls(
            endpoint=endpoint,
            database_name=os.environ.get("EVENT_STORE_COSMOS_DATABASE", "event-store"),
            container_name=os.environ.get("EVENT_STORE_COSMOS_CONTAINER", "streams"),
            auth_method=auth_method,
            key=key,
        )


def _build_query(
    document_filter: DocumentFilter, descending: bool
) -> tuple[str, list[dict[str, Any]]]:
    """Translate a DocumentFilter into Cosmos SQL with parameters."""
    conditions = ["c.stream_id = @stream_id"]
    params: list[dict[str, Any]] = [{"name": "@stream_id", "value": document_filter.stream_id}]

    if document_filter.document_type is not None:
        conditions.append("c.type = @type")
        params.append({"name": "@type", "value": document_filter.document_type.value})

    if document_filter.deleted is not None:
        conditions.append("c.deleted = @deleted")
        params.append({"name": "@deleted", "value": document_filter.deleted})

    if document_filter.version_lt is not None:
        conditions.append("c.version < @version_lt")
        params.append({"name": "@version_lt", "value": document_filter.version_lt})

    direction = "DESC" if descending else "ASC"
    sql = f"SELECT * FROM c WHERE {' AND '.join(conditions)} ORDER BY c.sort_order {direction}"
    return sql, params


class CosmosDocumentQuery(DocumentQuery):
    """Wraps the SDK page iterator as explicit has-more / fetch-next paging."""

    def __init__(self, pages: AsyncIterator[AsyncIterator[dict[str, Any]]]):
        self._pages = pages
        self._has_more = True

    @property
    def has_more_results(self) -> bool:
        return self._has_more

    async def fetch_next_page(self) -> list[dict[str, Any]]:
        if not self._has_more:
            return []
        try:
            page = await self._pages.__anext__()
            return [item async for item in page]
        except StopAsyncIteration:
            self._has_more = False
            return []
        except CosmosHttpResponseError as e:
            raise StorageIOError("query_documents", cause=e) from e


class CosmosDocumentStore(DocumentStore):
    """
    Cosmos DB-backed DocumentStore.

    Features:
    - Key or DefaultAzureCredential authentication
    - Single container, partitioned on /partition_key
    - Etag-guarded replaces for optimistic concurrency
    - Server-side ordering and paging for stream scans
    """

    def __init__(self, config: CosmosConfig):
        self.config = config
        self._client: CosmosClient | None = None
        self._credential: DefaultAzureCredential | None = None
        self._database: DatabaseProxy | None = None
        self._container: ContainerProxy | None = None
        self._initialized = False

    @classmethod
    async def create(cls, config: CosmosConfig | None = None) -> CosmosDocumentStore:
        """Create and initialize a Cosmos document store (config from env if None)."""
        if config is None:
            config = CosmosConfig.from_env()

        store = cls(config)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Initialize Cosmos connection and ensure the container exists."""
        if self._initialized:
            return

        try:
            if self.config.auth_method == AUTH_KEY:
                if not self.config.key:
                    raise AuthenticationError("cosmos", "Key required for key auth")
                self._client = CosmosClient(self.config.endpoint, credential=self.config.key)
            else:
                self._credential = DefaultAzureCredential()
                self._client = CosmosClient(self.config.endpoint, credential=self._credential)

            self._database = await self._client.create_database_if_not_exists(
                id=self.config.database_name
            )
            self._container = await self._database.create_container_if_not_exists(
                id=self.config.container_name,
                partition_key=PartitionKey(path=PARTITION_KEY_PATH),
            )

            self._initialized = True
            logger.info(
                f"Cosmos document store initialized: {self.config.endpoint}, "
                f"container={self.config.database_name}/{self.config.container_name}"
            )

        except CosmosHttpResponseError as e:
            if e.status_code == 401:
                raise AuthenticationError(self.config.endpoint, str(e)) from e
            raise StorageConnectionError(self.config.endpoint, e) from e

    async def close(self) -> None:
        """Close the Cosmos DB connection."""
        if self._client:
            await self._client.close()
            self._client = None
        if self._credential:
            await self._credential.close()
            self._credential = None
        self._database = None
        self._container = None
        self._initialized = False

    def _get_container(self) -> ContainerProxy:
        if self._container is None:
            raise StorageIOError("get_container", cause=RuntimeError("Store not initialized"))
        return self._container

    async def read_document(self, document_id: str, partition_key: str) -> dict[str, Any] | None:
        container = self._get_container()
        try:
            return await container.read_item(item=document_id, partition_key=partition_key)
        except CosmosResourceNotFoundError:
            return None
        except CosmosHttpResponseError as e:
            raise StorageIOError("read_document", document_id, e) from e

    async def create_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        container = self._get_container()
        try:
            return await container.create_item(body=document)
        except CosmosResourceExistsError as e:
            raise DocumentConflictError(document[FIELD_ID], partition_key, "already exists") from e
        except CosmosHttpResponseError as e:
            raise StorageIOError("create_document", document[FIELD_ID], e) from e

    async def replace_document(
        self,
        document: dict[str, Any],
        partition_key: str,
        etag: str,
    ) -> dict[str, Any]:
        container = self._get_container()
        try:
            return await container.replace_item(
                item=document[FIELD_ID],
                body=document,
                etag=etag,
                match_condition=MatchConditions.IfNotModified,
            )
        except CosmosAccessConditionFailedError as e:
            raise DocumentConflictError(document[FIELD_ID], partition_key, "etag mismatch") from e
        except CosmosResourceNotFoundError as e:
            raise DocumentNotFoundError(document[FIELD_ID], partition_key) from e
        except CosmosHttpResponseError as e:
            raise StorageIOError("replace_document", document[FIELD_ID], e) from e

    async def upsert_document(self, document: dict[str, Any], partition_key: str) -> dict[str, Any]:
        container = self._get_container()
        try:
            return await container.upsert_item(body=document)
        except CosmosHttpResponseError as e:
            raise StorageIOError("upsert_document", document[FIELD_ID], e) from e

    def query_documents(
        self,
        partition_key: str,
        document_filter: DocumentFilter,
        descending: bool = True,
        page_size: int = 100,
    ) -> CosmosDocumentQuery:
        container = self._get_container()
        sql, params = _build_query(document_filter, descending)
        logger.debug(f"Cosmos query on {partition_key}: {sql}")
        pager = container.query_items(
            query=sql,
            parameters=params,
            partition_key=partition_key,
            max_item_count=page_size,
        )
        return CosmosDocumentQuery(pager.by_page())
