"""
Tests for the CLI.
"""

from __future__ import annotations

import asyncio

import httpx
import orjson
import pytest
from typer.testing import CliRunner

from respcache import __version__
from respcache.cli.main import app
from respcache.config import Settings
from respcache.engine import connect
from respcache.store import PersistentCacheStore
from respcache.types import CacheKey

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logs(mock_env_vars: dict[str, str], monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep debug logging out of captured command output."""
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


def seed(settings: Settings, entries: dict[CacheKey, bytes]) -> None:
    """Write responses into the configured database."""

    async def write() -> None:
        db = await connect(settings.CACHE_DB_PATH)
        try:
            store = PersistentCacheStore.for_connection(
                db, table_name=settings.CACHE_TABLE_NAME
            )
            for key, body in entries.items():
                await store.put(
                    key,
                    httpx.Response(
                        200, headers={"Content-Type": "text/plain"}, content=body
                    ),
                )
            await store.close()
        finally:
            await db.close()

    asyncio.run(write())


class TestInspectionCommands:
    """Test read-only commands."""

    def test_version(self) -> None:
        """Test that version prints the package version."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_config(self, mock_settings: Settings) -> None:
        """Test that config lists the settings."""
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "CACHE_TABLE_NAME" in result.stdout
        assert "CacheRecord" in result.stdout

    def test_stats_on_empty_database(self, mock_settings: Settings) -> None:
        """Test stats on a database with no table yet."""
        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "Cached responses: 0" in result.stdout

    def test_list_json(self, mock_settings: Settings) -> None:
        """Test JSON listing of cached records."""
        seed(mock_settings, {CacheKey("http://a/"): b"one", CacheKey("http://b/"): b"two"})

        result = runner.invoke(app, ["list", "--json"])

        assert result.exit_code == 0
        records = orjson.loads(result.stdout)
        assert {r["cache_key"] for r in records} == {"http://a/-", "http://b/-"}
        assert all(r["size"] > 0 for r in records)

    def test_list_empty(self, mock_settings: Settings) -> None:
        """Test listing an empty cache."""
        result = runner.invoke(app, ["list"])

        assert result.exit_code == 0
        assert "Cache is empty" in result.stdout

    def test_show_cached_response(self, mock_settings: Settings) -> None:
        """Test showing a cached response with vary header values."""
        seed(mock_settings, {CacheKey("http://a/", ("en",)): b"hello"})

        result = runner.invoke(app, ["show", "http://a/", "-H", "en"])

        assert result.exit_code == 0
        assert "HTTP/1.1 200 OK" in result.stdout
        assert "hello" in result.stdout

    def test_show_missing(self, mock_settings: Settings) -> None:
        """Test that showing an uncached resource exits non-zero."""
        result = runner.invoke(app, ["show", "http://missing/"])

        assert result.exit_code == 1
        assert "Not cached" in result.output


class TestMaintenanceCommands:
    """Test commands that modify the cache."""

    def test_remove(self, mock_settings: Settings) -> None:
        """Test removing a cached response, then removing it again."""
        seed(mock_settings, {CacheKey("http://a/"): b"one"})

        first = runner.invoke(app, ["remove", "http://a/"])
        second = runner.invoke(app, ["remove", "http://a/"])

        assert first.exit_code == 0
        assert "Removed" in first.stdout
        assert second.exit_code == 0
        assert "Not cached" in second.stdout

    def test_clear_with_yes(self, mock_settings: Settings) -> None:
        """Test clearing without a prompt."""
        seed(mock_settings, {CacheKey("http://a/"): b"one", CacheKey("http://b/"): b"two"})

        result = runner.invoke(app, ["clear", "--yes"])
        stats = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "Cache cleared" in result.stdout
        assert "Cached responses: 0" in stats.stdout

    def test_clear_aborted(self, mock_settings: Settings) -> None:
        """Test that declining the prompt leaves the cache alone."""
        seed(mock_settings, {CacheKey("http://a/"): b"one"})

        result = runner.invoke(app, ["clear"], input="n\n")
        stats = runner.invoke(app, ["stats"])

        assert result.exit_code != 0
        assert "Cached responses: 1" in stats.stdout

    @pytest.mark.parametrize("command", [["stats"], ["list"]])
    def test_invalid_configuration(
        self, mock_settings: Settings, command: list[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that invalid settings exit with an error."""
        monkeypatch.setenv("CACHE_TABLE_NAME", "not valid")

        result = runner.invoke(app, command)

        assert result.exit_code == 1
        assert "Configuration is invalid" in result.output
