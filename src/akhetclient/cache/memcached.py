"""Memcached cache backend.

Uses :mod:`pymemcache`, installed through the ``memcached`` extra
(``pip install akhet-client[memcached]``). When the library is missing,
:func:`memcached_available` returns ``False`` and
:meth:`~akhetclient.client.RequestPipeline.enable_cache` leaves caching
disabled instead of failing.

Values are stored as JSON text. Expiry is passed to memcached as an
absolute unix timestamp; memcached treats any expiry above 30 days as one.
"""

from __future__ import annotations

import json
from typing import Any

from akhetclient.cache.base import CACHE_MISS

try:
    from pymemcache.client.base import Client as _MemcacheClient
except ImportError:  # pragma: no cover - exercised only without the extra
    _MemcacheClient = None


def memcached_available() -> bool:
    """Return ``True`` if :mod:`pymemcache` can be imported."""
    return _MemcacheClient is not None


class MemcachedCache:
    """Cache backend talking to a single memcached server.

    Connection and protocol errors are reported by the client as misses
    (``ignore_exc=True``), so an unreachable memcached slows nothing down
    beyond the failed lookup and never fails an API call.

    Args:
        host: Memcached server hostname.
        port: Memcached server port.
        connect_timeout: Seconds to wait when opening the connection.
        timeout: Seconds to wait for each cache operation.

    Raises:
        RuntimeError: If :mod:`pymemcache` is not installed.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 1.0,
        timeout: float = 1.0,
    ) -> None:
        if _MemcacheClient is None:
            raise RuntimeError("pymemcache is not installed")
        self.host = host
        self.port = port
        self._client = _MemcacheClient(
            (host, port),
            connect_timeout=connect_timeout,
            timeout=timeout,
            ignore_exc=True,
        )

    def get(self, key: str) -> Any:
        raw = self._client.get(key)
        if raw is None:
            return CACHE_MISS
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    def set(self, key: str, value: Any, expires_at: float) -> None:
        self._client.set(key, json.dumps(value), expire=int(expires_at))

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"MemcachedCache({self.host!r}, {self.port!r})"
