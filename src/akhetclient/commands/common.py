"""Helpers shared by the API sub-commands.

:func:`open_client` resolves the active profile from the Typer context and
yields a ready :class:`~akhetclient.client.AkhetClient`. Any
:class:`~akhetclient.exceptions.AkhetError` raised inside the block is
printed to stderr and turned into a ``typer.Exit`` carrying the error's
exit code.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from akhetclient.client import AkhetClient
from akhetclient.exceptions import AkhetError, ServerSideError
from akhetclient.exit_codes import EXIT_INVALID_USAGE
from akhetclient.output import error, suggest


@contextmanager
def open_client(ctx: typer.Context) -> Iterator[AkhetClient]:
    from akhetclient.config import build_client, resolve_config

    obj = ctx.obj or {}
    try:
        _, profile = resolve_config(obj.get("profile"))
        if profile is None:
            error("No Akhet profile configured.")
            suggest("akhet profile add NAME --host HOST --username USER")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        client = build_client(profile, use_cache=not obj.get("no_cache", False))
    except AkhetError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    try:
        with client:
            yield client
    except ServerSideError as exc:
        error(f"Server error {exc.errorno}: {exc.message}")
        raise typer.Exit(code=exc.exit_code) from None
    except AkhetError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
