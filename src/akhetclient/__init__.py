"""akhetclient -- Python client for the Akhet compute-instance server.

The package talks to an Akhet server over its versioned JSON API (protocol
``0.8``): host information, image listing, instance creation and display
resolution control. Every call funnels through a single request pipeline
that enforces the protocol version, maps failures onto a fixed exception
taxonomy, and optionally caches GET results.

Typical use::

    from akhetclient import AkhetClient

    client = AkhetClient("akhet.example.org", "admin", "secret", protocol="https")
    client.enable_cache("127.0.0.1", 11211, ttl=30)
    token = client.create_instance({"image": "ubuntu"})

Modules:
    client: :class:`RequestPipeline` and the :class:`AkhetClient` operations.
    cache: Cache backend protocol plus memcached and disk backends.
    models: Pydantic models shared across the package.
    config: XDG-aware profile and global configuration for the CLI.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr diagnostics built on Rich.
    app: Typer application and the ``akhet`` entry point.
"""

__version__ = "0.8.1"

from akhetclient.client import AkhetClient, RequestPipeline  # noqa: E402

__all__ = ["AkhetClient", "RequestPipeline", "__version__"]
