"""Read-through caching of GET results for akhetclient.

This package provides the :class:`CacheBackend` contract consumed by
:class:`~akhetclient.client.RequestPipeline`, the key derivation
(:func:`make_cache_key`), and two backends:

- :class:`MemcachedCache` -- memcached via :mod:`pymemcache` (optional extra).
- :class:`DiskCache` -- local filesystem via :mod:`diskcache`.

Only successful GET results are cached, keyed by resource path plus a
digest of the request payload.
"""

from akhetclient.cache.base import (
    CACHE_MISS,
    KEY_PREFIX,
    CacheBackend,
    make_cache_key,
    payload_digest,
)
from akhetclient.cache.disk import DiskCache
from akhetclient.cache.memcached import MemcachedCache, memcached_available

__all__ = [
    "CACHE_MISS",
    "KEY_PREFIX",
    "CacheBackend",
    "DiskCache",
    "MemcachedCache",
    "make_cache_key",
    "memcached_available",
    "payload_digest",
]
