"""Host commands -- server information and image catalogues.

Provides the ``akhet host`` and ``akhet images`` sub-command groups. Both
read cacheable endpoints, so results may come from the profile's cache
unless ``--no-cache`` is given.

Example::

    akhet host info
    akhet images list --online --json
"""

from __future__ import annotations

import typer

from akhetclient.commands.common import open_client
from akhetclient.output import format_response


host_app = typer.Typer(no_args_is_help=True)
images_app = typer.Typer(no_args_is_help=True)


@host_app.command("info")
def host_info(ctx: typer.Context) -> None:
    """Show the server's host information."""
    with open_client(ctx) as client:
        format_response(client.host_info())


@images_app.command("list")
def images_list(
    ctx: typer.Context,
    online: bool = typer.Option(
        False, "--online", help="List images from the online registry instead of local ones."
    ),
) -> None:
    """List the images available on the server."""
    with open_client(ctx) as client:
        result = client.list_images_online() if online else client.list_images()
        format_response(result)
