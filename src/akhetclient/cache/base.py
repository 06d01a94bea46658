"""Cache backend contract and cache-key derivation.

A backend is anything with ``get(key)`` and ``set(key, value, expires_at)``.
:class:`~akhetclient.client.RequestPipeline` receives one explicitly (or
builds a :class:`~akhetclient.cache.MemcachedCache` through
``enable_cache``); when it has none, it never reads or writes a cache.

Backends must be safe to call from several threads at once. The pipeline
does not lock around them, so two identical concurrent GETs may both miss
and both store; the last write wins.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

KEY_PREFIX = "AKHETCLIENT:"


class _CacheMiss:
    """Type of :data:`CACHE_MISS`."""

    def __repr__(self) -> str:
        return "CACHE_MISS"

    def __bool__(self) -> bool:
        return False


CACHE_MISS: Any = _CacheMiss()
"""Returned by :meth:`CacheBackend.get` when nothing is stored under a key.

A distinct sentinel, so that a cached JSON ``null`` still counts as a hit.
"""


@runtime_checkable
class CacheBackend(Protocol):
    """Key/value store with absolute expiry used for GET results."""

    def get(self, key: str) -> Any:
        """Return the stored value, or :data:`CACHE_MISS`."""
        ...

    def set(self, key: str, value: Any, expires_at: float) -> None:
        """Store *value* until the unix timestamp *expires_at*."""
        ...


def payload_digest(payload: Optional[Mapping[str, Any]]) -> str:
    """Stable SHA-1 of *payload* serialised as JSON with sorted keys."""
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def make_cache_key(resource_path: str, payload: Optional[Mapping[str, Any]]) -> str:
    """Derive the cache key for a GET on *resource_path* with *payload*.

    Example::

        >>> make_cache_key("hostinfo", {})
        'AKHETCLIENT:hostinfobf21a9e8fbc5a3846fb05b4fa0859e0917b2202f'
    """
    return f"{KEY_PREFIX}{resource_path}{payload_digest(payload)}"
