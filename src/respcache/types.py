"""
Core types for the response cache.

This module defines the data structures shared by the store, the storage
engine and the CLI:
- CacheKey: stable identifier of a cacheable request
- CacheKeyLike: protocol for caller-provided key types
- CacheRecord: the persisted row
- Helper for timestamps
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@runtime_checkable
class CacheKeyLike(Protocol):
    """Anything the store can use as a key.

    The primary key of a row is ``hash_base64``; ``str(key)`` is kept
    alongside for inspection only.
    """

    @property
    def hash_base64(self) -> str: ...

    def __str__(self) -> str: ...


@dataclass(frozen=True)
class CacheKey:
    """Immutable cache key for a request.

    The canonical form is the resource URI followed by the values of the
    request headers the response varies on, each joined with "-". The hash
    is the SHA-1 of the UTF-8 canonical form, so it is stable across
    process restarts.
    """

    resource_uri: str
    header_values: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable of header values but store a tuple
        object.__setattr__(self, "header_values", tuple(self.header_values))

    @property
    def canonical(self) -> str:
        """Canonical string form used for hashing and display."""
        return f"{self.resource_uri}-{'-'.join(self.header_values)}"

    @property
    def hash(self) -> bytes:
        """20-byte SHA-1 digest of the canonical form."""
        return hashlib.sha1(self.canonical.encode("utf-8")).digest()

    @property
    def hash_base64(self) -> str:
        """Base64 text of the hash, used as the row primary key."""
        return base64.b64encode(self.hash).decode("ascii")

    def __str__(self) -> str:
        return self.canonical


@dataclass(frozen=True)
class CacheRecord:
    """A cached response as stored in the database.

    Exactly one record exists per ``id``; writes replace, never version.
    """

    id: str  # key.hash_base64
    cache_key: str  # str(key), diagnostic only
    modification_date: datetime
    data: bytes  # serialized response

    @classmethod
    def for_key(cls, key: CacheKeyLike, data: bytes) -> CacheRecord:
        """Create a record for a key, stamped with the current time.

        Args:
            key: The cache key.
            data: Serialized payload.

        Returns:
            New CacheRecord.
        """
        return cls(
            id=key.hash_base64,
            cache_key=str(key),
            modification_date=utc_now(),
            data=data,
        )

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return len(self.data)
