"""
Custom exception hierarchy for the response cache.

All exceptions inherit from RespCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class RespCacheError(Exception):
    """Base exception for all response cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(RespCacheError):
    """Raised when configuration is invalid.

    Examples:
        - Table name that is not a plain SQL identifier
        - Unreadable database path
    """

    pass


class InvalidArgumentError(RespCacheError, ValueError):
    """Raised when a store operation receives a missing or unusable argument.

    Always raised before any I/O is attempted.

    Context should include:
        - argument: Name of the offending argument
    """

    pass


class SchemaError(RespCacheError):
    """Raised when the cache table could not be created.

    The store stays uninitialized and retries creation on the next call.

    Context should include:
        - table: The table being created
    """

    pass


class StorageError(RespCacheError):
    """Raised when the storage engine fails a find, insert or delete.

    Context should include:
        - table: The table being accessed
        - operation: find, insert_or_replace, delete, delete_all, ...
        - record_id: The primary key involved, if any
    """

    pass


class CodecError(RespCacheError):
    """Raised when a response cannot be serialized or a payload decoded.

    A corrupt stored row is left untouched; callers decide whether to
    overwrite it.

    Context should include:
        - direction: "serialize" or "deserialize"
        - size: Payload size in bytes, when known
    """

    pass


class StoreClosedError(RespCacheError):
    """Raised when an operation is attempted on a closed store."""

    pass


class UnsupportedOperationError(RespCacheError, TypeError):
    """Raised when the storage engine lacks an optional operation.

    Context should include:
        - engine: Engine class name
        - operation: The missing method, e.g. count or list_records
    """

    pass
