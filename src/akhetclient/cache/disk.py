"""Disk-based cache backend.

Uses :mod:`diskcache` to persist GET results on the local filesystem, for
machines that have no memcached at hand. Entries expire at the absolute
timestamp given by the pipeline; ``diskcache`` takes a relative expiry, so
the remaining lifetime is computed at write time.

See Also:
    :class:`~akhetclient.models.CacheConfig` -- selects this backend with
    ``backend = "disk"``.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import diskcache

from akhetclient.cache.base import CACHE_MISS


class DiskCache:
    """Disk-backed cache for Akhet GET results.

    Args:
        cache_dir: Root directory for the cache. A ``responses/``
            subdirectory is created inside it.

    Example::

        from akhetclient.cache import DiskCache

        cache = DiskCache("/tmp/akhet-cache")
        cache.set("AKHETCLIENT:hostinfo...", {"cpu": 8}, time.time() + 30)
        hit = cache.get("AKHETCLIENT:hostinfo...")
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir)
        self._cache = diskcache.Cache(str(self._cache_dir / "responses"))

    def get(self, key: str) -> Any:
        """Look up *key*, returning :data:`~akhetclient.cache.CACHE_MISS` when absent or expired."""
        return self._cache.get(key, default=CACHE_MISS)

    def set(self, key: str, value: Any, expires_at: float) -> None:
        """Store *value* under *key* until *expires_at*.

        Entries whose expiry is already in the past are not written.
        """
        remaining = expires_at - time.time()
        if remaining <= 0:
            return
        self._cache.set(key, value, expire=remaining)

    def invalidate(self, key: str) -> None:
        """Remove a single entry."""
        self._cache.delete(key)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return the number of entries and the cache directory."""
        return {
            "backend": "disk",
            "size": len(self._cache),
            "directory": str(self._cache_dir / "responses"),
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()
