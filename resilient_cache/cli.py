"""
Command-line interface for cache administration

Provides CLI commands for:
- Inspecting the cache: resilient-cache stats, resilient-cache health
- Clearing the backing store: resilient-cache clear
- Removing entries: resilient-cache delete KEY, resilient-cache delete-pattern GLOB

Every command builds a cache manager from the environment, so the
in-process fallback store it sees is empty; commands that change data
therefore require a reachable backing store.
"""

import asyncio
import sys
from typing import Any, Awaitable, Callable, TypeVar

import click

from resilient_cache import __version__
from resilient_cache.cache.manager import CacheManager
from resilient_cache.config import load_settings
from resilient_cache.exceptions import CacheValidationError, ConfigurationError
from resilient_cache.utils.logger import setup_logging

T = TypeVar("T")


def run_with_manager(action: Callable[[CacheManager], Awaitable[T]]) -> T:
    """Run an async action against a freshly connected manager, then close it."""

    async def runner() -> T:
        manager = CacheManager(load_settings())
        try:
            await manager.connect()
            return await action(manager)
        finally:
            await manager.close()

    try:
        return asyncio.run(runner())
    except (ConfigurationError, CacheValidationError) as e:
        raise click.ClickException(str(e)) from e


def require_remote(manager: CacheManager) -> None:
    """Fail the command unless the backing store is serving requests."""
    if manager.remote is None:
        raise click.ClickException("Backing store is disabled by configuration (CACHE_DISABLED)")
    if manager.backend != "redis":
        raise click.ClickException(
            f"Backing store is unavailable (state: {manager.state.value})"
        )


@click.group()
@click.version_option(version=__version__, prog_name="resilient-cache")
@click.option("--log-level", default="WARNING", help="Log level for cache diagnostics")
def cli(log_level: str):
    """resilient-cache - inspect and manage the API response cache"""
    setup_logging(level=log_level, stream=sys.stderr)


@cli.command()
def stats():
    """Show cache statistics and backend health as JSON"""

    async def action(manager: CacheManager) -> Any:
        return manager.get_stats()

    result = run_with_manager(action)
    click.echo(result.model_dump_json(indent=2))


@cli.command()
def health():
    """Probe the backing store and report overall cache health"""

    async def action(manager: CacheManager) -> Any:
        return await manager.health_check()

    result = run_with_manager(action)
    click.echo(result.model_dump_json(indent=2))

    if result.status == "degraded":
        raise SystemExit(1)


@cli.command()
def clear():
    """Flush every entry from the backing store"""

    async def action(manager: CacheManager) -> bool:
        require_remote(manager)
        return await manager.flush()

    run_with_manager(action)
    click.echo("Cache cleared successfully")


@cli.command()
@click.argument("key")
def delete(key: str):
    """Delete a single cache KEY"""

    async def action(manager: CacheManager) -> bool:
        require_remote(manager)
        return await manager.delete(key)

    deleted = run_with_manager(action)
    if deleted:
        click.echo(f"Deleted: {key}")
    else:
        click.echo(f"Key not found in cache: {key}")


@cli.command("delete-pattern")
@click.argument("pattern")
def delete_pattern(pattern: str):
    """Delete every cache key matching a glob PATTERN"""

    async def action(manager: CacheManager) -> int:
        require_remote(manager)
        return await manager.delete_by_pattern(pattern)

    count = run_with_manager(action)
    click.echo(f"Deleted {count} key(s) matching {pattern}")


def main():
    """Main entry point for CLI"""
    cli()


if __name__ == "__main__":
    main()
