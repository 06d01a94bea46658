"""Rendering of Akhet results and diagnostics.

Results of API calls (host information, image catalogues, instance
tokens and states) go to **stdout**; everything else, from cache and
request tracing to warnings about dropped instance options, goes to
**stderr**. Library code never prints directly: it asks the installed
:class:`OutputManager`, so a script using :class:`~akhetclient.AkhetClient`
gets warnings on stderr and nothing on stdout.

Three result formats exist:

* ``json`` -- the server's ``data`` member re-serialised, for scripts.
* ``plain`` -- one ``key<TAB>value`` line per field, or one line per list
  item. Used when stdout is not a terminal.
* ``rich`` -- key/value and column tables drawn by :mod:`rich`.

The ``akhet`` command installs a manager in
:func:`~akhetclient.app.main_callback`; outside the CLI a default one is
created on first use.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterator, NamedTuple, Optional

from rich.console import Console, RenderableType
from rich.pretty import Pretty
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """How results are written to stdout. ``AUTO`` is resolved at construction."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Diagnostic(NamedTuple):
    prefix: str
    style: str
    # Printed even with --quiet.
    always: bool


_DIAGNOSTICS = {
    "info": _Diagnostic("", "", False),
    "success": _Diagnostic("", "green", False),
    "suggest": _Diagnostic("→ ", "dim", False),
    "warning": _Diagnostic("Warning: ", "yellow", True),
    "error": _Diagnostic("Error: ", "bold red", True),
    "debug": _Diagnostic("[debug] ", "dim", True),
}


class OutputManager:
    """Writes results to stdout and diagnostics to stderr.

    Args:
        format: Result format. ``AUTO`` becomes ``RICH`` on a colour
            terminal and ``PLAIN`` everywhere else.
        no_color: Disable colour. ``NO_COLOR`` and ``TERM=dumb`` in the
            environment have the same effect.
        quiet: Drop info, success and suggestion lines.
        verbose: Show ``[debug]`` lines (requests, cache hits and misses).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = _color_disabled(no_color)
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # stdout

    def format_response(self, data: Any) -> None:
        """Write the ``data`` of an API response in the active format."""
        if self._format is OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format is OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif data is not None:
            self._stdout.print(_renderable(data))

    def print_data(self, text: str) -> None:
        """Write *text* and a newline to stdout, unformatted."""
        print(text, file=sys.stdout, flush=True)

    def print_table(self, headers: list[str], rows: list[list[str]]) -> None:
        """Write rows of strings under *headers*.

        JSON output is a list of objects keyed by header; plain output is a
        tab-separated header line followed by one line per row.
        """
        if self._format is OutputFormat.JSON:
            self.format_response([dict(zip(headers, row)) for row in rows])
        elif self._format is OutputFormat.PLAIN:
            for cells in [headers, *rows]:
                self.print_data("\t".join(cells))
        else:
            self._stdout.print(_column_table(headers, rows))

    # stderr

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def suggest(self, message: str) -> None:
        """Point at the command that would fix the situation."""
        self._emit("suggest", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit("debug", message)

    def _emit(self, kind: str, message: str) -> None:
        diagnostic = _DIAGNOSTICS[kind]
        if self._quiet and not diagnostic.always:
            return
        line = diagnostic.prefix + message
        if self._no_color:
            print(line, file=sys.stderr, flush=True)
        else:
            # Text, not markup: messages carry URLs, JSON bodies and "[debug]".
            self._stderr.print(Text(line, style=diagnostic.style))


def _plain_scalar(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _plain_lines(data: Any) -> Iterator[str]:
    if data is None:
        return
    if isinstance(data, dict):
        for key, value in data.items():
            yield f"{key}\t{_plain_scalar(value)}"
    elif isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                yield "\t".join(_plain_scalar(v) for v in item.values())
            else:
                yield _plain_scalar(item)
    else:
        yield str(data)


def _column_table(headers: list[str], rows: list[list[Any]]) -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*(_cell(value) for value in row))
    return table


def _cell(value: Any) -> RenderableType:
    if isinstance(value, (dict, list)):
        return Pretty(value)
    return "" if value is None else str(value)


def _renderable(data: Any) -> RenderableType:
    """Key/value table for objects, column table for lists of objects."""
    if isinstance(data, dict):
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        for key, value in data.items():
            table.add_row(str(key), _cell(value))
        return table
    if isinstance(data, list) and data and all(isinstance(item, dict) for item in data):
        headers: list[str] = []
        for item in data:
            headers.extend(str(key) for key in item if str(key) not in headers)
        rows = [[item.get(header) for header in headers] for item in data]
        return _column_table(headers, rows)
    if isinstance(data, list):
        return Text("\n".join(_plain_scalar(item) for item in data))
    return Text(str(data))


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled(requested: bool) -> bool:
    """True for ``--no-color``, any ``NO_COLOR`` value, or ``TERM=dumb``."""
    return requested or "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed :class:`OutputManager`, created with defaults on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next :func:`get_output` builds a new one."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]]) -> None:
    get_output().print_table(headers, rows)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)
