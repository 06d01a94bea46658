"""The ``akhet`` command.

The root callback turns the global flags into an
:class:`~akhetclient.output.OutputManager` and a ``ctx.obj`` dict read by
the sub-commands (``profile``, ``no_cache``, ``force``). API errors are
handled inside the commands through
:func:`~akhetclient.commands.common.open_client`; :func:`main` only deals
with what escapes them: Ctrl-C, a stray :class:`~akhetclient.exceptions.AkhetError`,
and real crashes, whose traceback is saved under the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from akhetclient import __version__
from akhetclient.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from akhetclient.output import OutputFormat, OutputManager, error, set_output


app = typer.Typer(
    name="akhet",
    help="Create and inspect instances on an Akhet server.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"akhet {__version__}")
        raise typer.Exit()


def _result_format(json_output: bool, plain_output: bool) -> OutputFormat:
    if json_output and plain_output:
        raise typer.BadParameter("--json and --plain cannot be combined")
    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Print the version."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Server profile (default: the configured default)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
    plain_output: bool = typer.Option(
        False, "--plain", help="Print results as tab-separated text."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="No colours on either stream."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only results, warnings and errors."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Trace requests and cache hits on stderr."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Ignore the profile's cache for GET requests."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Set up output and shared options for the sub-command."""
    set_output(
        OutputManager(
            format=_result_format(json_output, plain_output),
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    ctx.obj = {"profile": profile, "no_cache": no_cache, "force": force}


def register_commands() -> None:
    """Add the sub-command groups to :data:`app`. Calling it again is a no-op."""
    from akhetclient.commands.cache import cache_app
    from akhetclient.commands.host import host_app, images_app
    from akhetclient.commands.instance import instance_app
    from akhetclient.commands.profile import profile_app
    from akhetclient.commands.resolution import resolution_app

    present = {group.name for group in app.registered_groups}
    for name, sub_app, summary in (
        ("host", host_app, "Server host information."),
        ("images", images_app, "Local and online image catalogues."),
        ("instance", instance_app, "Create instances and query their state."),
        ("resolution", resolution_app, "Read or change an instance's display resolution."),
        ("profile", profile_app, "Server profiles: host, credentials and cache."),
        ("cache", cache_app, "Statistics and clearing of the disk cache."),
    ):
        if name not in present:
            app.add_typer(sub_app, name=name, help=summary)


def _interrupted(signum: int, frame: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _save_crash_report() -> Path:
    """Write the traceback being handled to ``logs/crash-<timestamp>.log``."""
    from akhetclient.config import get_data_dir

    logs = get_data_dir() / "logs"
    logs.mkdir(parents=True, exist_ok=True)
    report = logs / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    report.write_text(f"akhet {__version__}\n{traceback.format_exc()}")
    return report


def main() -> None:
    """Console-script entry point of ``akhet``. Always ends in :class:`SystemExit`."""
    from akhetclient.exceptions import AkhetError

    signal.signal(signal.SIGINT, _interrupted)
    register_commands()
    try:
        app()
    except KeyboardInterrupt:
        _interrupted(signal.SIGINT, None)
    except AkhetError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_save_crash_report()}")
        sys.exit(EXIT_GENERIC_FAILURE)
