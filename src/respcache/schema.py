"""
One-time, concurrency-safe schema initialization.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable


class SchemaGate:
    """Runs a create-if-absent callable exactly once per successful init.

    Once ready, ensure_ready() returns without touching the lock. A failed
    creation leaves the gate uninitialized so the next call retries.
    """

    def __init__(self, create: Callable[[], Awaitable[None]]) -> None:
        """Initialize the gate.

        Args:
            create: Async callable that creates the table if it is absent.
        """
        self._create = create
        self._lock = asyncio.Lock()
        self._ready = False

    @property
    def is_ready(self) -> bool:
        """Whether the table is known to exist."""
        return self._ready

    async def ensure_ready(self) -> None:
        """Make sure the table exists, creating it on first use.

        Raises:
            Whatever the create callable raises; the gate stays unready.
        """
        if self._ready:
            return

        async with self._lock:
            # Another caller may have finished while we waited
            if not self._ready:
                await self._create()
                self._ready = True
