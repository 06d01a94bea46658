"""Profile commands -- manage connection profiles for Akhet servers.

Provides the ``akhet profile`` sub-command group for creating, listing,
showing, selecting and removing :class:`~akhetclient.models.Profile`
files. The selected profile is stored as ``default_profile`` in the global
configuration.

Typical workflow::

    akhet profile add lab --host akhet.lab --username admin \\
        --password-source env:AKHET_PASSWORD --cache-host 127.0.0.1
    akhet profile use lab
    akhet profile show
"""

from __future__ import annotations

from typing import Optional

import typer

from akhetclient.exit_codes import EXIT_INVALID_USAGE
from akhetclient.output import error, format_response, info, print_table, success


profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    host: str = typer.Option(..., "--host", help="Akhet server hostname."),
    username: str = typer.Option(..., "--username", "-u", help="HTTP username."),
    password_source: str = typer.Option(
        "prompt",
        "--password-source",
        help="Where to read the password: env:VAR, file:/path, prompt, value:SECRET.",
    ),
    protocol: str = typer.Option("http", "--protocol", help="http or https."),
    cache_host: Optional[str] = typer.Option(None, "--cache-host", help="Memcached hostname."),
    cache_port: int = typer.Option(11211, "--cache-port", help="Memcached port."),
    disk_cache: bool = typer.Option(False, "--disk-cache", help="Cache GET results on disk."),
    cache_ttl: int = typer.Option(30, "--cache-ttl", help="Cache TTL in seconds."),
    timeout: float = typer.Option(30.0, "--timeout", help="Request timeout in seconds."),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS certificate verification."),
) -> None:
    """Create or overwrite a profile.

    Caching is enabled by ``--cache-host`` (memcached) or ``--disk-cache``.
    Without either, the profile never caches.
    """
    from akhetclient.config import profile_exists, save_profile
    from akhetclient.exceptions import InvalidProtocol
    from akhetclient.models import CacheBackendType, CacheConfig, Profile, RequestConfig

    cache: Optional[CacheConfig] = None
    if disk_cache:
        cache = CacheConfig(backend=CacheBackendType.DISK, ttl_seconds=cache_ttl)
    elif cache_host is not None:
        cache = CacheConfig(cache_host=cache_host, cache_port=cache_port, ttl_seconds=cache_ttl)

    try:
        profile = Profile(
            name=name,
            host=host,
            username=username,
            password_source=password_source,
            protocol=protocol,
            cache=cache,
            request=RequestConfig(timeout=timeout, verify_ssl=not insecure),
        )
    except InvalidProtocol as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if profile_exists(name):
        info(f'Profile "{name}" already exists and will be overwritten.')
    save_profile(profile)
    success(f'Profile "{name}" saved.')


@profile_app.command("list")
def profile_list() -> None:
    """List all profiles, marking the default one."""
    from akhetclient.config import list_profiles, load_global_config

    default = load_global_config().default_profile
    rows = [
        [name, "*" if name == default else ""] for name in list_profiles()
    ]
    if not rows:
        info("No profiles configured.")
        return
    print_table(["name", "default"], rows)


@profile_app.command("show")
def profile_show(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Profile name (defaults to the active one)."),
) -> None:
    """Show a profile."""
    from akhetclient.config import load_profile, resolve_config
    from akhetclient.exceptions import ConfigError

    try:
        if name is not None:
            profile = load_profile(name)
        else:
            _, profile = resolve_config((ctx.obj or {}).get("profile"))
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    if profile is None:
        error("No active profile.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    format_response(profile.model_dump(mode="json"))


@profile_app.command("use")
def profile_use(
    name: str = typer.Argument(help="Profile to make the default."),
) -> None:
    """Make *name* the default profile."""
    from akhetclient.config import load_global_config, profile_exists, save_global_config

    if not profile_exists(name):
        error(f"Profile '{name}' does not exist.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    config = load_global_config()
    config.default_profile = name
    save_global_config(config)
    success(f'Default profile set to "{name}".')


@profile_app.command("remove")
def profile_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Profile to delete."),
) -> None:
    """Delete a profile. Asks for confirmation unless ``--force`` is active."""
    from akhetclient.config import delete_profile, load_global_config, save_global_config
    from akhetclient.exceptions import ConfigError

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f'Delete profile "{name}"?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    try:
        delete_profile(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
    success(f'Profile "{name}" removed.')
