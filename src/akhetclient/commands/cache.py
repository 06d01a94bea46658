"""Cache commands -- inspect and clear the on-disk GET cache.

Only profiles using the ``disk`` backend keep anything locally; memcached
entries expire on their own after the profile's TTL.

Example::

    akhet cache stats
    akhet cache clear
"""

from __future__ import annotations

import typer

from akhetclient.exit_codes import EXIT_INVALID_USAGE
from akhetclient.output import error, format_response, info, success


cache_app = typer.Typer(no_args_is_help=True)


def _disk_cache_for(ctx: typer.Context):
    from akhetclient.cache import DiskCache
    from akhetclient.config import get_cache_dir, resolve_config
    from akhetclient.exceptions import ConfigError
    from akhetclient.models import CacheBackendType

    try:
        _, profile = resolve_config((ctx.obj or {}).get("profile"))
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    if profile is None:
        error("No active profile.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    if profile.cache is None or profile.cache.backend != CacheBackendType.DISK:
        info(f'Profile "{profile.name}" does not use the disk cache.')
        raise typer.Exit()
    return DiskCache(get_cache_dir() / profile.name)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the number of cached entries for the active profile."""
    cache = _disk_cache_for(ctx)
    try:
        format_response(cache.stats())
    finally:
        cache.close()


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached entry of the active profile."""
    cache = _disk_cache_for(ctx)
    try:
        cache.clear()
    finally:
        cache.close()
    success("Cache cleared.")
