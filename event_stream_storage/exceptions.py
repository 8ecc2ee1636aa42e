"""
Custom exceptions for event stream storage.

All document store backends and stream operations raise these exceptions
for consistent error handling across backends.
"""


class EventStoreError(Exception):
    """Base exception for all event store errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# =============================================================================
# Stream-level errors
# =============================================================================


class StreamNotFoundError(EventStoreError):
    """Raised when a stream has no header, a deleted header, or no documents."""

    def __init__(self, stream_id: str):
        super().__init__(f"Stream not found: {stream_id}", {"stream_id": stream_id})
        self.stream_id = stream_id


class StreamAlreadyExistsError(EventStoreError):
    """Raised when a first write races with another creator of the same stream."""

    def __init__(self, stream_id: str):
        super().__init__(f"Stream already exists: {stream_id}", {"stream_id": stream_id})
        self.stream_id = stream_id


class OptimisticConcurrencyError(EventStoreError):
    """Raised when the stream version does not match the caller's expectation.

    ``actual_version`` is None when the mismatch was detected by the store
    (stale concurrency token) rather than by comparing versions.
    """

    def __init__(self, stream_id: str, expected_version: int, actual_version: int | None):
        details = {"stream_id": stream_id, "expected_version": expected_version}
        if actual_version is not None:
            details["actual_version"] = actual_version
            message = (
                f"Concurrency conflict on stream {stream_id}: "
                f"expected version {expected_version}, actual {actual_version}"
            )
        else:
            message = (
                f"Concurrency conflict on stream {stream_id}: "
                f"header changed since version {expected_version} was read"
            )
        super().__init__(message, details)
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class PartialWriteError(EventStoreError):
    """Raised when the header was committed but not every event was persisted.

    The stream's declared version is ahead of its materialized events.
    Nothing is rolled back.
    """

    def __init__(
        self,
        stream_id: str,
        committed_version: int,
        persisted_events: int,
        expected_events: int,
        cause: Exception | None = None,
    ):
        details = {
            "stream_id": stream_id,
            "committed_version": committed_version,
            "persisted_events": persisted_events,
            "expected_events": expected_events,
        }
        if cause:
            details["cause"] = str(cause)
        super().__init__(
            f"Partial write to stream {stream_id}: header at version {committed_version}, "
            f"{persisted_events} of {expected_events} events persisted",
            details,
        )
        self.stream_id = stream_id
        self.committed_version = committed_version
        self.persisted_events = persisted_events
        self.expected_events = expected_events
        self.cause = cause


# =============================================================================
# Document store errors
# =============================================================================


class DocumentConflictError(EventStoreError):
    """Raised by a document store when a conditional write loses.

    Covers both "id already exists" on create and "token no longer matches"
    on replace.
    """

    def __init__(self, document_id: str, partition_key: str, reason: str = "conflict"):
        super().__init__(
            f"Document conflict for {document_id} in {partition_key}: {reason}",
            {"document_id": document_id, "partition_key": partition_key, "reason": reason},
        )
        self.document_id = document_id
        self.partition_key = partition_key
        self.reason = reason


class DocumentNotFoundError(EventStoreError):
    """Raised by a document store when a replace targets a missing document."""

    def __init__(self, document_id: str, partition_key: str):
        super().__init__(
            f"Document not found: {document_id} in {partition_key}",
            {"document_id": document_id, "partition_key": partition_key},
        )
        self.document_id = document_id
        self.partition_key = partition_key


class StorageIOError(EventStoreError):
    """Raised when a storage I/O operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class StorageConnectionError(EventStoreError):
    """Raised when connection to remote storage fails.

    Note: Named StorageConnectionError to avoid shadowing the builtin ConnectionError.
    """

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {"endpoint": endpoint}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Connection failed to {endpoint}", details)
        self.endpoint = endpoint
        self.cause = cause


class AuthenticationError(EventStoreError):
    """Raised when authentication to remote storage fails."""

    def __init__(self, endpoint: str, reason: str | None = None):
        details = {"endpoint": endpoint}
        if reason:
            details["reason"] = reason
        super().__init__(f"Authentication failed for {endpoint}", details)
        self.endpoint = endpoint
        self.reason = reason


# =============================================================================
# Payload and input errors
# =============================================================================


class CodecError(EventStoreError):
    """Raised when a payload cannot be encoded or decoded."""

    def __init__(self, type_tag: str, reason: str):
        super().__init__(
            f"Codec error for {type_tag}: {reason}",
            {"type_tag": type_tag, "reason": reason},
        )
        self.type_tag = type_tag
        self.reason = reason


class ValidationError(EventStoreError):
    """Raised when input or configuration validation fails."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value
