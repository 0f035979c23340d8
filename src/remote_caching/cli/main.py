"""
CLI for remote caching.

Commands:
    remote-caching stats - Show entry count, payload size and expired entries
    remote-caching clear - Delete all entries, or one with --key
    remote-caching config - Show current configuration
    remote-caching version - Print version
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from remote_caching import __version__
from remote_caching.config import Settings, clear_settings_cache, get_settings
from remote_caching.engine import RemoteCaching
from remote_caching.logging import setup_logging
from remote_caching.types import CachingStats

app = typer.Typer(
    name="remote-caching",
    help="Inspect and manage the remote call cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

DatabaseOption = Annotated[
    Optional[str],
    typer.Option("--database", "-d", help="Database path (defaults to configuration)"),
]


def _load_settings() -> Settings:
    """Load settings, exiting with a readable error if they are invalid."""
    try:
        clear_settings_cache()
        settings = get_settings()
    except ValidationError as e:
        error_console.print(f"[red]Error:[/red] Configuration is invalid.\n{e}")
        raise typer.Exit(1) from e

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return settings


async def _collect_stats(settings: Settings, database: str | None) -> CachingStats:
    cache = RemoteCaching(settings)
    await cache.init(database_path=database)
    try:
        return await cache.get_cache_stats()
    finally:
        await cache.dispose()


async def _clear(settings: Settings, database: str | None, key: str | None) -> None:
    cache = RemoteCaching(settings)
    await cache.init(database_path=database)
    try:
        if key is None:
            await cache.clear_cache()
        else:
            await cache.clear_cache_for_key(key)
    finally:
        await cache.dispose()


@app.command()
def stats(database: DatabaseOption = None) -> None:
    """Show cache statistics.

    Expired entries are removed when the cache is opened, so the expired
    count only includes entries that expired since.
    """
    settings = _load_settings()
    result = asyncio.run(_collect_stats(settings, database))

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Database", database or settings.database_path)
    table.add_row("Total entries", str(result.total_entries))
    table.add_row("Total size (bytes)", f"{result.total_size_bytes:,}")
    table.add_row("Expired entries", str(result.expired_entries))

    console.print(table)


@app.command()
def clear(
    key: Annotated[
        Optional[str],
        typer.Option("--key", "-k", help="Only clear this key"),
    ] = None,
    database: DatabaseOption = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Delete cached entries."""
    settings = _load_settings()

    target = f"entry '{key}'" if key is not None else "all entries"
    if not yes and not typer.confirm(f"Delete {target}?"):
        raise typer.Abort()

    asyncio.run(_clear(settings, database, key))
    console.print(f"[green]Cleared {target}.[/green]")


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
    console.print(f"remote-caching version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
