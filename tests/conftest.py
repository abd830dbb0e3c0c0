"""
Pytest configuration and fixtures for response cache tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import patch

import aiosqlite
import pytest

from respcache.config import Settings, clear_settings_cache
from respcache.engine import SQLiteEngine, connect
from respcache.store import PersistentCacheStore


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "CACHE_DB_PATH": str(temp_dir / "cache" / "http-cache.db"),
        "CACHE_TABLE_NAME": "CacheRecord",
        "SQLITE_TIMEOUT": "2.5",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance pointing at the temp directory."""
    from respcache.config import get_settings

    settings = get_settings()
    settings.ensure_directories()
    yield settings
    clear_settings_cache()


@pytest.fixture
async def db(temp_dir: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """Open a cache database connection owned by the test."""
    connection = await connect(temp_dir / "cache" / "http-cache.db")
    yield connection
    await connection.close()


@pytest.fixture
def engine(db: aiosqlite.Connection) -> SQLiteEngine:
    """Provide a SQLite engine over the test connection."""
    return SQLiteEngine(db)


@pytest.fixture
async def store(engine: SQLiteEngine) -> AsyncGenerator[PersistentCacheStore, None]:
    """Provide a fresh store over the test engine."""
    cache_store = PersistentCacheStore(engine)
    yield cache_store
    await cache_store.close()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
