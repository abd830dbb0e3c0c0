"""
Persistent SQLite-backed cache store for HTTP responses.

Typical use:

    db = await connect(".cache/http-cache.db")
    store = PersistentCacheStore.for_connection(db)
    await store.put(CacheKey("https://example.com/"), response)
    cached = await store.get(CacheKey("https://example.com/"))
    await store.close()
    await db.close()
"""

from respcache.codec import HttpResponseCodec, MessageCodec
from respcache.engine import SQLiteEngine, StorageEngine, connect
from respcache.exceptions import (
    CodecError,
    ConfigurationError,
    InvalidArgumentError,
    RespCacheError,
    SchemaError,
    StorageError,
    StoreClosedError,
    UnsupportedOperationError,
)
from respcache.schema import SchemaGate
from respcache.store import PersistentCacheStore
from respcache.types import CacheKey, CacheKeyLike, CacheRecord

__version__ = "0.1.0"

__all__ = [
    "CacheKey",
    "CacheKeyLike",
    "CacheRecord",
    "CodecError",
    "ConfigurationError",
    "HttpResponseCodec",
    "InvalidArgumentError",
    "MessageCodec",
    "PersistentCacheStore",
    "RespCacheError",
    "SQLiteEngine",
    "SchemaError",
    "SchemaGate",
    "StorageEngine",
    "StorageError",
    "StoreClosedError",
    "UnsupportedOperationError",
    "__version__",
    "connect",
]
