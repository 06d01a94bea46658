"""Instance commands -- create instances and query their state.

Provides the ``akhet instance`` sub-command group. ``create`` maps its
options onto :class:`~akhetclient.models.InstanceConfig`; options that are
not given are not sent. Options without a dedicated flag (such as
``additional_ws``) can be passed as a JSON object with ``--extra``.

Example::

    akhet instance create --image ubuntu --user alice --env LANG=C.UTF-8
    akhet instance create --image ubuntu --extra '{"additional_ws": [6080]}'
    akhet instance info 3f2a...
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from akhetclient.commands.common import open_client
from akhetclient.exit_codes import EXIT_INVALID_USAGE
from akhetclient.output import error, format_response, print_data, success


instance_app = typer.Typer(no_args_is_help=True)


def _parse_env(pairs: list[str]) -> dict[str, str]:
    """Turn ``KEY=VALUE`` strings into a dict."""
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            error(f"Invalid --env value {pair!r}, expected KEY=VALUE")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        env[key] = value
    return env


def _parse_extra(extra: str) -> dict[str, Any]:
    try:
        parsed = json.loads(extra)
    except json.JSONDecodeError as exc:
        error(f"Invalid --extra JSON: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    if not isinstance(parsed, dict):
        error("--extra must be a JSON object")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    return parsed


@instance_app.command("create")
def instance_create(
    ctx: typer.Context,
    image: Optional[str] = typer.Option(None, "--image", "-i", help="Image to use."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Username in the Akhet system."),
    network: Optional[str] = typer.Option(None, "--network", help="Network profile."),
    resource: Optional[str] = typer.Option(None, "--resource", help="Resources flavor."),
    enable_cuda: Optional[bool] = typer.Option(None, "--cuda/--no-cuda", help="CUDA support."),
    env: Optional[list[str]] = typer.Option(None, "--env", "-e", help="Environment variable KEY=VALUE (repeatable)."),
    notimeout: Optional[bool] = typer.Option(None, "--notimeout/--timeout", help="Keep the instance alive indefinitely."),
    shared: Optional[bool] = typer.Option(None, "--shared/--private", help="Share the instance."),
    uid: Optional[int] = typer.Option(None, "--uid", help="UID of the user."),
    gids: Optional[list[int]] = typer.Option(None, "--gid", help="GID of the user (repeatable)."),
    storages: Optional[list[str]] = typer.Option(None, "--storage", help="Storage directory (repeatable)."),
    user_label: Optional[str] = typer.Option(None, "--label", help="User display name."),
    extra: Optional[str] = typer.Option(None, "--extra", help="Additional options as a JSON object."),
) -> None:
    """Create an instance and print its token on stdout."""
    config: dict[str, Any] = _parse_extra(extra) if extra else {}
    flags: dict[str, Any] = {
        "image": image,
        "user": user,
        "network": network,
        "resource": resource,
        "enable_cuda": enable_cuda,
        "env": _parse_env(env) if env else None,
        "notimeout": notimeout,
        "shared": shared,
        "uid": uid,
        "gids": gids or None,
        "storages": storages or None,
        "user_label": user_label,
    }
    config.update({key: value for key, value in flags.items() if value is not None})

    with open_client(ctx) as client:
        token = client.create_instance(config)
    success("Instance created")
    print_data(str(token))


@instance_app.command("info")
def instance_info(
    ctx: typer.Context,
    token: str = typer.Argument(help="Instance token."),
) -> None:
    """Show the state of an instance."""
    with open_client(ctx) as client:
        format_response(client.get_instance_info(token))
