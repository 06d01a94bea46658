"""Shared test fixtures for akhetclient.

Provides a fake Akhet server built on :class:`httpx.MockTransport`, an
in-memory cache backend, isolated config directories and a quiet output
manager. These fixtures are discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from akhetclient.cache import CACHE_MISS
from akhetclient.client import AkhetClient, RequestPipeline
from akhetclient.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner and capture fixtures swap those streams, so a
    fresh manager is forced on next use.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Fake Akhet server
# ---------------------------------------------------------------------------


def envelope(data: Any, version: str = "0.8") -> dict[str, Any]:
    """Build a server response envelope."""
    return {"version": version, "data": data}


class FakeAkhetServer:
    """Callable handler for :class:`httpx.MockTransport`.

    Responses are registered per ``(method, resource)``; every request is
    recorded in :attr:`requests` so tests can assert on URL, headers and
    body.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def respond(
        self,
        method: str,
        resource: str,
        data: Any = None,
        status_code: int = 200,
        version: str = "0.8",
        body: Optional[bytes] = None,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if body is not None:
                return httpx.Response(status_code, content=body)
            return httpx.Response(status_code, json=envelope(data, version))

        self.routes[(method, resource)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        resource = request.url.path.split("/0.8/", 1)[-1]
        handler = self.routes.get((request.method, resource))
        if handler is None:
            return httpx.Response(404, text="no route")
        return handler(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def body_of(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


class MemoryCache:
    """In-memory cache backend honouring absolute expiry."""

    def __init__(self) -> None:
        self.entries: dict[str, tuple[Any, float]] = {}
        self.gets = 0
        self.sets = 0
        self.closes = 0

    def get(self, key: str) -> Any:
        self.gets += 1
        entry = self.entries.get(key)
        if entry is None or entry[1] <= time.time():
            return CACHE_MISS
        return entry[0]

    def set(self, key: str, value: Any, expires_at: float) -> None:
        self.sets += 1
        self.entries[key] = (value, expires_at)

    def close(self) -> None:
        self.closes += 1


@pytest.fixture
def server() -> FakeAkhetServer:
    return FakeAkhetServer()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def pipeline(server: FakeAkhetServer, quiet_output: OutputManager) -> RequestPipeline:
    """A RequestPipeline talking to the fake server, without cache."""
    p = RequestPipeline(
        "akhet.test", "admin", "secret", transport=httpx.MockTransport(server)
    )
    yield p
    p.close()


@pytest.fixture
def client(server: FakeAkhetServer, quiet_output: OutputManager) -> AkhetClient:
    """An AkhetClient talking to the fake server, without cache."""
    c = AkhetClient(
        "akhet.test", "admin", "secret", transport=httpx.MockTransport(server)
    )
    yield c
    c.close()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path, forces the
    XDG code path, clears ``AKHET_PROFILE`` and changes the working
    directory to tmp_path.
    """
    monkeypatch.setattr("akhetclient.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("AKHET_PROFILE", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
