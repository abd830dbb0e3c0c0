"""
Persistent cache store for HTTP responses.

PersistentCacheStore is the public get/put/remove/clear surface. It keys
rows by the cache key's hash, serializes responses through a MessageCodec
and lazily creates its table on first use through a SchemaGate.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import aiosqlite

from respcache.codec import HttpResponseCodec, MessageCodec
from respcache.engine import DEFAULT_TABLE_NAME, SQLiteEngine, StorageEngine
from respcache.exceptions import (
    InvalidArgumentError,
    StoreClosedError,
    UnsupportedOperationError,
)
from respcache.logging import get_logger, log_context
from respcache.schema import SchemaGate
from respcache.types import CacheKeyLike, CacheRecord

logger = get_logger(__name__)


class PersistentCacheStore:
    """Durable keyed store of serialized HTTP responses.

    The storage engine (and the connection behind it) is shared and
    externally owned: close() releases only what the store itself holds.
    Absence of a key is reported as None or False; a corrupt stored
    payload is reported as a CodecError.
    """

    def __init__(
        self,
        engine: StorageEngine,
        codec: MessageCodec | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            engine: Storage engine to read and write records through.
            codec: Response codec. Defaults to HttpResponseCodec.

        Raises:
            InvalidArgumentError: If engine is None.
        """
        if engine is None:
            raise InvalidArgumentError(
                "engine must not be None", context={"argument": "engine"}
            )
        self._engine = engine
        self._codec: MessageCodec = codec if codec is not None else HttpResponseCodec()
        self._gate: SchemaGate | None = SchemaGate(engine.create_table)
        self._name = getattr(engine, "table_name", type(engine).__name__)

    @classmethod
    def for_connection(
        cls,
        connection: aiosqlite.Connection,
        codec: MessageCodec | None = None,
        table_name: str = DEFAULT_TABLE_NAME,
    ) -> PersistentCacheStore:
        """Create a store backed by SQLite on a borrowed connection.

        Args:
            connection: Open aiosqlite connection, owned by the caller.
            codec: Response codec. Defaults to HttpResponseCodec.
            table_name: Table holding cached responses.

        Returns:
            New store; the table is created on first use.
        """
        if connection is None:
            raise InvalidArgumentError(
                "connection must not be None", context={"argument": "connection"}
            )
        return cls(SQLiteEngine(connection, table_name=table_name), codec=codec)

    @property
    def engine(self) -> StorageEngine:
        """The underlying storage engine."""
        return self._engine

    @property
    def is_ready(self) -> bool:
        """Whether the cache table has been created by this store."""
        return self._gate is not None and self._gate.is_ready

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._gate is None

    async def get(self, key: CacheKeyLike) -> Any | None:
        """Get the cached response for a key.

        Args:
            key: Cache key of the request.

        Returns:
            The deserialized response, or None if nothing is cached.

        Raises:
            InvalidArgumentError: If key is missing.
            CodecError: If the stored payload is corrupt.
            StorageError: If the lookup fails.
        """
        record_id = self._record_id(key)

        with log_context(store=self._name, operation="get"):
            await self._ensure_ready()

            record = await self._engine.find(record_id)
            if record is None:
                logger.debug("Cache miss", key=str(key))
                return None

            response = await self._codec.deserialize(record.data)
            logger.debug("Cache hit", key=str(key), size=record.size)
            return response

    async def put(self, key: CacheKeyLike, response: Any) -> None:
        """Store a response, replacing whatever was cached for the key.

        Args:
            key: Cache key of the request.
            response: Response to cache.

        Raises:
            InvalidArgumentError: If key or response is missing.
            CodecError: If the response cannot be serialized.
            StorageError: If the write fails.
        """
        record_id = self._record_id(key)
        if response is None:
            raise InvalidArgumentError(
                "response must not be None", context={"argument": "response"}
            )

        with log_context(store=self._name, operation="put"):
            await self._ensure_ready()

            data = await self._codec.serialize(response)
            record = CacheRecord.for_key(key, data)
            await self._engine.insert_or_replace(record)
            logger.debug(
                "Stored response", key=record.cache_key, id=record_id, size=record.size
            )

    async def remove(self, key: CacheKeyLike) -> bool:
        """Remove the cached response for a key.

        Args:
            key: Cache key of the request.

        Returns:
            True if a response was removed, False if none was cached.
        """
        record_id = self._record_id(key)

        with log_context(store=self._name, operation="remove"):
            await self._ensure_ready()

            deleted = await self._engine.delete(record_id)
            if deleted > 0:
                logger.debug("Removed response", key=str(key))
            return deleted > 0

    async def clear(self) -> None:
        """Remove every cached response."""
        self._check_open()

        with log_context(store=self._name, operation="clear"):
            await self._ensure_ready()

            deleted = await self._engine.delete_all()
            logger.debug("Cleared cache", deleted=deleted)

    async def count(self) -> int:
        """Get the number of cached responses.

        Only available on engines that can count records.

        Raises:
            UnsupportedOperationError: If the engine has no count().
        """
        engine = self._inspection_engine("count")
        await self._ensure_ready()
        return await engine.count()

    async def entries(self, limit: int = 50) -> list[CacheRecord]:
        """List cached records, most recently modified first.

        Only available on engines that can list records.

        Raises:
            UnsupportedOperationError: If the engine has no list_records().
        """
        engine = self._inspection_engine("list_records")
        await self._ensure_ready()
        return await engine.list_records(limit)

    async def close(self) -> None:
        """Release the store's own resources.

        The storage engine and its connection stay open; they belong to
        the caller. Closing twice is a no-op.
        """
        if self._gate is not None:
            self._gate = None
            logger.debug("Cache store closed", store=self._name)

    async def __aenter__(self) -> PersistentCacheStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _ensure_ready(self) -> None:
        gate = self._gate
        if gate is None:
            raise self._closed_error()
        await gate.ensure_ready()

    def _record_id(self, key: CacheKeyLike) -> str:
        """Validate a key and return its primary key."""
        self._check_open()
        if key is None:
            raise InvalidArgumentError("key must not be None", context={"argument": "key"})

        record_id = getattr(key, "hash_base64", None)
        if not isinstance(record_id, str) or not record_id:
            raise InvalidArgumentError(
                "key must provide a non-empty hash_base64",
                context={"argument": "key", "type": type(key).__name__},
            )
        return record_id

    def _check_open(self) -> None:
        if self._gate is None:
            raise self._closed_error()

    def _closed_error(self) -> StoreClosedError:
        return StoreClosedError("Cache store is closed", context={"store": self._name})

    def _inspection_engine(self, method: str) -> Any:
        if not hasattr(self._engine, method):
            engine_name = type(self._engine).__name__
            raise UnsupportedOperationError(
                f"{engine_name} does not support {method}()",
                context={"engine": engine_name, "operation": method},
            )
        return self._engine
