"""Built-in CLI sub-commands for akhet.

This package groups the Typer sub-command modules that form the CLI's
command tree:

* :mod:`~akhetclient.commands.host` -- server information and images.
* :mod:`~akhetclient.commands.instance` -- create and inspect instances.
* :mod:`~akhetclient.commands.resolution` -- instance display resolution.
* :mod:`~akhetclient.commands.profile` -- manage server profiles.
* :mod:`~akhetclient.commands.cache` -- inspect and clear the disk cache.

Each module exports a :class:`typer.Typer` sub-application registered on
the root app by :func:`akhetclient.app.register_commands`.
"""
