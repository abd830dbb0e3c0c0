"""
Storage engine for cached responses.

SQLiteEngine maps CacheRecord rows onto a single SQLite table through an
aiosqlite connection. The connection is borrowed: the engine never opens
or closes it, so several engines (or other code) may share one connection.
"""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import aiosqlite

from respcache.config import IDENTIFIER_RE
from respcache.exceptions import ConfigurationError, SchemaError, StorageError
from respcache.logging import get_logger
from respcache.types import CacheRecord

logger = get_logger(__name__)

DEFAULT_TABLE_NAME = "CacheRecord"


@runtime_checkable
class StorageEngine(Protocol):
    """Primitives the store needs from a database."""

    async def create_table(self) -> None:
        """Create the cache table if it does not exist."""
        ...

    async def find(self, record_id: str) -> CacheRecord | None:
        """Find a record by primary key."""
        ...

    async def insert_or_replace(self, record: CacheRecord) -> None:
        """Insert a record, replacing any record with the same id."""
        ...

    async def delete(self, record_id: str) -> int:
        """Delete a record by primary key, returning rows affected."""
        ...

    async def delete_all(self) -> int:
        """Delete every record, returning rows affected."""
        ...


async def connect(path: str | Path, timeout: float = 5.0) -> aiosqlite.Connection:
    """Open a connection to a cache database.

    The caller owns the returned connection and must close it.

    Args:
        path: Database file path, or ":memory:".
        timeout: Seconds to wait on a locked database.

    Returns:
        Open aiosqlite connection.
    """
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(path, timeout=timeout)
    db.row_factory = aiosqlite.Row
    return db


class SQLiteEngine:
    """StorageEngine over an externally owned aiosqlite connection."""

    def __init__(
        self,
        connection: aiosqlite.Connection,
        table_name: str = DEFAULT_TABLE_NAME,
    ) -> None:
        """Initialize the engine.

        Args:
            connection: Open connection; not closed by the engine.
            table_name: Table holding cached responses.

        Raises:
            ConfigurationError: If table_name is not a plain SQL identifier.
        """
        if not IDENTIFIER_RE.match(table_name):
            raise ConfigurationError(
                "Table name must be a plain SQL identifier",
                context={"table": table_name},
            )
        self._db = connection
        self.table_name = table_name

    async def create_table(self) -> None:
        """Run CREATE TABLE IF NOT EXISTS for the cache table."""
        try:
            await self._db.execute(f"""
                CREATE TABLE IF NOT EXISTS "{self.table_name}" (
                    id TEXT PRIMARY KEY NOT NULL,
                    cacheKey TEXT NOT NULL,
                    modificationDate TEXT NOT NULL,
                    data BLOB NOT NULL
                )
            """)
            await self._db.commit()
        except sqlite3.Error as e:
            raise SchemaError(
                f"Failed to create cache table: {e}",
                context={"table": self.table_name},
            ) from e

        logger.debug("Cache table ready", table=self.table_name)

    async def find(self, record_id: str) -> CacheRecord | None:
        """Find a record by primary key.

        Args:
            record_id: The key's hash_base64.

        Returns:
            The record, or None if absent.
        """
        try:
            async with self._db.execute(
                f'SELECT id, cacheKey, modificationDate, data FROM "{self.table_name}" '
                "WHERE id = ?",
                (record_id,),
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise self._storage_error("find", e, record_id) from e

        if not row:
            return None

        return self._row_to_record(row)

    async def insert_or_replace(self, record: CacheRecord) -> None:
        """Insert a record, replacing any record with the same id."""
        await self._write(
            "insert_or_replace",
            f'INSERT OR REPLACE INTO "{self.table_name}" '
            "(id, cacheKey, modificationDate, data) VALUES (?, ?, ?, ?)",
            (
                record.id,
                record.cache_key,
                record.modification_date.isoformat(),
                record.data,
            ),
            record_id=record.id,
        )

    async def delete(self, record_id: str) -> int:
        """Delete a record by primary key.

        Returns:
            Number of rows deleted (0 or 1).
        """
        return await self._write(
            "delete",
            f'DELETE FROM "{self.table_name}" WHERE id = ?',
            (record_id,),
            record_id=record_id,
        )

    async def delete_all(self) -> int:
        """Delete every record.

        Returns:
            Number of rows deleted.
        """
        return await self._write("delete_all", f'DELETE FROM "{self.table_name}"', ())

    async def count(self) -> int:
        """Get total count of cached records."""
        try:
            async with self._db.execute(
                f'SELECT COUNT(*) FROM "{self.table_name}"'
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise self._storage_error("count", e) from e

        return row[0] if row else 0

    async def list_records(self, limit: int = 50) -> list[CacheRecord]:
        """List records, most recently modified first.

        Args:
            limit: Maximum records to return.

        Returns:
            List of records including their payloads.
        """
        try:
            async with self._db.execute(
                f'SELECT id, cacheKey, modificationDate, data FROM "{self.table_name}" '
                "ORDER BY modificationDate DESC LIMIT ?",
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise self._storage_error("list_records", e) from e

        return [self._row_to_record(row) for row in rows]

    async def _write(
        self,
        operation: str,
        sql: str,
        params: tuple[Any, ...],
        record_id: str | None = None,
    ) -> int:
        """Execute and commit a write statement.

        Shielded so that a cancelled caller cannot leave the statement
        executed but uncommitted on the shared connection. A failed
        statement is rolled back before the error is raised.
        """

        async def execute_and_commit() -> int:
            try:
                cursor = await self._db.execute(sql, params)
                try:
                    affected = cursor.rowcount
                finally:
                    await cursor.close()
                await self._db.commit()
            except sqlite3.Error:
                await self._db.rollback()
                raise
            return affected

        task = asyncio.ensure_future(execute_and_commit())
        task.add_done_callback(
            lambda t: self._collect_detached(t, operation, record_id)
        )

        try:
            return await asyncio.shield(task)
        except sqlite3.Error as e:
            raise self._storage_error(operation, e, record_id) from e

    def _collect_detached(
        self,
        task: asyncio.Future[int],
        operation: str,
        record_id: str | None,
    ) -> None:
        """Retrieve the outcome of a write whose caller may have been cancelled."""
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(
                "Write failed",
                table=self.table_name,
                operation=operation,
                record_id=record_id,
                error=str(error),
            )

    def _storage_error(
        self,
        operation: str,
        error: Exception,
        record_id: str | None = None,
    ) -> StorageError:
        context: dict[str, Any] = {"table": self.table_name, "operation": operation}
        if record_id is not None:
            context["record_id"] = record_id
        return StorageError(f"Storage engine failed: {error}", context=context)

    @staticmethod
    def _row_to_record(row: Any) -> CacheRecord:
        """Convert a database row to a CacheRecord."""
        return CacheRecord(
            id=row[0],
            cache_key=row[1],
            modification_date=datetime.fromisoformat(row[2]),
            data=bytes(row[3]),
        )
