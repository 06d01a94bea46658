"""HTTP client module for akhetclient.

Provides the request pipeline that wraps :mod:`httpx` with Basic auth,
protocol-version checks, typed error mapping and optional GET caching,
plus the named Akhet operations built on it.

Classes:
    :class:`RequestPipeline` -- the single chokepoint for API calls.
    :class:`AkhetClient` -- host, image, instance and resolution operations.

Example::

    from akhetclient.client import AkhetClient

    with AkhetClient("akhet.local", "admin", "secret") as client:
        images = client.list_images()
"""

from akhetclient.client.akhet import AkhetClient
from akhetclient.client.pipeline import RequestPipeline, compact_payload

__all__ = ["AkhetClient", "RequestPipeline", "compact_payload"]
