"""
CLI for inspecting a response cache database.

Commands:
    respcache stats - Show record count and database location
    respcache list - List cached records
    respcache show URI - Show a cached response
    respcache remove URI - Remove a cached response
    respcache clear - Remove all cached responses
    respcache config - Show current configuration
    respcache version - Print version
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator, Awaitable, Callable, Optional

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from respcache import __version__
from respcache.config import Settings, clear_settings_cache, get_settings
from respcache.engine import connect
from respcache.exceptions import RespCacheError
from respcache.logging import setup_logging
from respcache.store import PersistentCacheStore
from respcache.types import CacheKey

app = typer.Typer(
    name="respcache",
    help="Inspect and maintain a persistent HTTP response cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

HeaderOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--header",
        "-H",
        help="Value of a request header the response varies on (repeatable, in order)",
    ),
]


def _load_settings() -> Settings:
    """Load settings, exiting with a readable message if they are invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        error_console.print(f"[red]Error:[/red] Configuration is invalid:\n{e}")
        raise typer.Exit(1)


@asynccontextmanager
async def _open_store(settings: Settings) -> AsyncIterator[PersistentCacheStore]:
    """Open the configured database and yield a store over it.

    The CLI owns the connection, so it closes it after the store.
    """
    db = await connect(settings.CACHE_DB_PATH, timeout=settings.SQLITE_TIMEOUT)
    try:
        async with PersistentCacheStore.for_connection(
            db, table_name=settings.CACHE_TABLE_NAME
        ) as store:
            yield store
    finally:
        await db.close()


def _run(coro_fn: Callable[[], Awaitable[None]]) -> None:
    """Run an async command body, turning cache errors into exit code 1."""
    try:
        asyncio.run(coro_fn())
    except RespCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _setup(settings: Settings) -> None:
    setup_logging(settings.LOG_LEVEL, log_file=settings.LOG_FILE)


@app.command()
def stats() -> None:
    """Show how many responses are cached and where."""
    settings = _load_settings()
    _setup(settings)

    async def body() -> None:
        async with _open_store(settings) as store:
            total = await store.count()

        console.print(
            Panel(
                f"[bold]Database:[/bold] {settings.CACHE_DB_PATH}\n"
                f"[bold]Table:[/bold] {settings.CACHE_TABLE_NAME}\n"
                f"[bold]Cached responses:[/bold] {total}",
                title="[bold cyan]Response Cache[/bold cyan]",
                border_style="cyan",
            )
        )

    _run(body)


@app.command("list")
def list_entries(
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Maximum records to show"),
    ] = 50,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print records as JSON"),
    ] = False,
) -> None:
    """List cached records, most recently modified first."""
    settings = _load_settings()
    _setup(settings)

    async def body() -> None:
        async with _open_store(settings) as store:
            records = await store.entries(limit)

        if as_json:
            payload = [
                {
                    "id": r.id,
                    "cache_key": r.cache_key,
                    "modification_date": r.modification_date,
                    "size": r.size,
                }
                for r in records
            ]
            console.print_json(orjson.dumps(payload).decode("utf-8"))
            return

        if not records:
            console.print("[dim]Cache is empty.[/dim]")
            return

        table = Table(title="Cached Responses", show_header=True)
        table.add_column("Cache Key", style="cyan")
        table.add_column("Modified", style="green")
        table.add_column("Size", justify="right")
        table.add_column("Id", style="dim")

        for r in records:
            table.add_row(
                r.cache_key,
                r.modification_date.strftime("%Y-%m-%d %H:%M:%S"),
                f"{r.size:,}",
                r.id,
            )

        console.print(table)

    _run(body)


@app.command()
def show(
    uri: Annotated[str, typer.Argument(help="Resource URI of the cached request")],
    header: HeaderOption = None,
    body_limit: Annotated[
        int,
        typer.Option("--body-limit", help="Characters of the body to print (0 for none)"),
    ] = 500,
) -> None:
    """Show the cached response for a resource."""
    settings = _load_settings()
    _setup(settings)
    key = CacheKey(uri, tuple(header or ()))

    async def body() -> None:
        async with _open_store(settings) as store:
            response = await store.get(key)

        if response is None:
            error_console.print(f"[yellow]Not cached:[/yellow] {key}")
            raise typer.Exit(1)

        table = Table(show_header=False, box=None)
        table.add_column("Header", style="cyan")
        table.add_column("Value")
        for name, value in response.headers.multi_items():
            table.add_row(name, value)

        console.print(
            f"[bold]{response.http_version} {response.status_code} "
            f"{response.reason_phrase}[/bold]"
        )
        console.print(table)
        if body_limit > 0 and response.content:
            console.print()
            console.print(response.text[:body_limit], markup=False)

    _run(body)


@app.command()
def remove(
    uri: Annotated[str, typer.Argument(help="Resource URI of the cached request")],
    header: HeaderOption = None,
) -> None:
    """Remove the cached response for a resource."""
    settings = _load_settings()
    _setup(settings)
    key = CacheKey(uri, tuple(header or ()))

    async def body() -> None:
        async with _open_store(settings) as store:
            removed = await store.remove(key)

        if removed:
            console.print(f"[green]Removed:[/green] {key}")
        else:
            console.print(f"[yellow]Not cached:[/yellow] {key}")

    _run(body)


@app.command()
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation"),
    ] = False,
) -> None:
    """Remove every cached response."""
    settings = _load_settings()
    _setup(settings)

    if not yes:
        typer.confirm(
            f"Remove all cached responses from {settings.CACHE_DB_PATH}?", abort=True
        )

    async def body() -> None:
        async with _open_store(settings) as store:
            await store.clear()

        console.print("[green]Cache cleared.[/green]")

    _run(body)


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = _load_settings()

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"respcache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
