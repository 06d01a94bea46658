"""Resolution commands -- read and change an instance's display resolution.

Example::

    akhet resolution get 3f2a...
    akhet resolution set 3f2a... 1920 1080
"""

from __future__ import annotations

import typer

from akhetclient.commands.common import open_client
from akhetclient.output import format_response, success


resolution_app = typer.Typer(no_args_is_help=True)


@resolution_app.command("get")
def resolution_get(
    ctx: typer.Context,
    token: str = typer.Argument(help="Instance token."),
) -> None:
    """Show the current and available resolutions of an instance."""
    with open_client(ctx) as client:
        format_response(client.get_instance_resolution_info(token))


@resolution_app.command("set")
def resolution_set(
    ctx: typer.Context,
    token: str = typer.Argument(help="Instance token."),
    width: int = typer.Argument(help="Width in pixels."),
    height: int = typer.Argument(help="Height in pixels."),
) -> None:
    """Change the display resolution of an instance."""
    with open_client(ctx) as client:
        result = client.set_instance_resolution(token, width, height)
    success(f"Resolution set to {width}x{height}")
    if result is not None:
        format_response(result)
