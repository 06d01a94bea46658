"""The request pipeline every Akhet API call passes through.

This module provides :class:`RequestPipeline`, a blocking client wrapping
:class:`httpx.Client`. A call to :meth:`RequestPipeline.execute` runs, in
order:

1. **Method check** -- only ``GET`` and ``POST`` exist in the Akhet API;
   anything else fails before any I/O.
2. **Cache lookup** -- GET requests are answered from the cache backend
   when one is configured and the caller did not bypass it. A hit skips
   every later step.
3. **Request** -- ``{protocol}://{host}/0.8/{resource}`` with HTTP Basic
   auth and a JSON body holding the non-null payload fields.
4. **Response interpretation** -- the HTTP status and the JSON envelope
   ``{"version": ..., "data": ...}`` are mapped onto a value or one of
   the exceptions in :mod:`akhetclient.exceptions`.
5. **Cache store** -- successful GET results are written back with the
   configured TTL.

Nothing is retried. A failure surfaces once to the caller.

See Also:
    :class:`~akhetclient.client.akhet.AkhetClient` for the named
    operations built on top of :meth:`RequestPipeline.execute`.
"""

from __future__ import annotations

import json
import time
from typing import Any, Mapping, Optional

import httpx

from akhetclient.cache import (
    CACHE_MISS,
    CacheBackend,
    MemcachedCache,
    make_cache_key,
    memcached_available,
)
from akhetclient.exceptions import (
    InvalidHTTPStatus,
    MethodNotSupported,
    ServerNotAvailable,
    ServerSideError,
    Unauthorized,
    VersionMismatch,
)
from akhetclient.models import DEFAULT_CACHE_TTL, ClientConfig, HTTPMethod, ServerEnvelope
from akhetclient.output import get_output

_SUPPORTED_METHODS = (HTTPMethod.GET.value, HTTPMethod.POST.value)


def compact_payload(payload: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Return *payload* without the entries whose value is ``None``."""
    if not payload:
        return {}
    return {key: value for key, value in payload.items() if value is not None}


class RequestPipeline:
    """Authenticated, version-checked, optionally cached access to an Akhet server.

    Connection settings are validated into an immutable
    :class:`~akhetclient.models.ClientConfig` at construction time.
    Caching stays off until a backend is attached through the *cache*
    argument, :meth:`use_cache` or :meth:`enable_cache`.

    Args:
        host: Akhet server hostname (optionally with ``:port``).
        username: HTTP Basic auth username.
        password: HTTP Basic auth password.
        protocol: ``"http"`` (default) or ``"https"``, case-insensitive.
        cache: Optional cache backend for GET results.
        cache_ttl: Lifetime of cached entries, in seconds.
        timeout: Transport timeout in seconds.
        verify_ssl: Verify the server certificate on HTTPS.
        transport: Optional :class:`httpx.BaseTransport`, mainly for tests
            (:class:`httpx.MockTransport`).

    Raises:
        InvalidProtocol: If *protocol* is not ``http`` or ``https``.

    Example::

        pipeline = RequestPipeline("akhet.local", "admin", "secret")
        info = pipeline.execute("hostinfo")
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        protocol: str = "http",
        *,
        cache: Optional[CacheBackend] = None,
        cache_ttl: int = DEFAULT_CACHE_TTL,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = ClientConfig(
            host=host, username=username, password=password, protocol=protocol
        )
        self._cache: Optional[CacheBackend] = cache
        self._cache_ttl = cache_ttl
        self._client = httpx.Client(
            auth=httpx.BasicAuth(username, password),
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
        )

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def base_url(self) -> str:
        """Server root, ``{protocol}://{host}``."""
        return self.config.base_url

    @property
    def api_version(self) -> str:
        return self.config.api_version

    @property
    def cache(self) -> Optional[CacheBackend]:
        """The attached cache backend, or ``None`` when caching is off."""
        return self._cache

    @property
    def cache_enabled(self) -> bool:
        return self._cache is not None

    @property
    def cache_ttl(self) -> int:
        return self._cache_ttl

    def use_cache(self, backend: Optional[CacheBackend], ttl: int = DEFAULT_CACHE_TTL) -> None:
        """Attach *backend* for GET caching, or detach with ``None``. Last call wins.

        The pipeline owns the attached backend: a backend being replaced,
        and the one attached when :meth:`close` runs, are closed if they
        have a ``close()`` method.
        """
        if self._cache is not None and self._cache is not backend:
            self._close_cache()
        self._cache = backend
        self._cache_ttl = ttl

    def enable_cache(self, cache_host: str, cache_port: int, ttl: int = DEFAULT_CACHE_TTL) -> None:
        """Cache GET results in the memcached server at *cache_host*:*cache_port*.

        When :mod:`pymemcache` is not installed a warning is printed and
        caching stays disabled; this is not an error.
        """
        if not memcached_available():
            get_output().warning("pymemcache is not installed, GET caching is disabled")
            self.use_cache(None, ttl)
            return
        self.use_cache(MemcachedCache(cache_host, cache_port), ttl)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Release the underlying :class:`httpx.Client` and the cache backend."""
        self._client.close()
        self._close_cache()

    def _close_cache(self) -> None:
        close = getattr(self._cache, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> RequestPipeline:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Request execution
    # ------------------------------------------------------------------ #

    def url_for(self, resource_path: str) -> str:
        """Full URL of *resource_path*: ``{base_url}/{api_version}/{resource_path}``."""
        return f"{self.base_url}/{self.api_version}/{resource_path}"

    def execute(
        self,
        resource_path: str,
        method: str = "GET",
        payload: Optional[Mapping[str, Any]] = None,
        bypass_cache: bool = False,
    ) -> Any:
        """Run one API call and return the envelope's ``data``.

        Args:
            resource_path: Endpoint segment, e.g. ``"instance"``.
            method: ``"GET"`` or ``"POST"``.
            payload: Request fields. Entries set to ``None`` are not sent.
            bypass_cache: Skip the cache lookup and store for this call.

        Returns:
            The ``data`` member of the server envelope (or the cached copy).

        Raises:
            MethodNotSupported: *method* is not GET or POST. Raised before any I/O.
            ServerNotAvailable: A status arrived but its body was lost, or a
                200 response had no usable body.
            VersionMismatch: The envelope's ``version`` is not ours.
            ServerSideError: The envelope's ``data`` carries an error.
            Unauthorized: The server answered 401.
            InvalidHTTPStatus: The server answered any other status, or did
                not answer at all (status 0: connection refused, DNS, timeout).
        """
        if method not in _SUPPORTED_METHODS:
            raise MethodNotSupported(f"Method not supported: {method!r}")
        method = HTTPMethod(method).value

        body = compact_payload(payload)
        output = get_output()

        cache_key: Optional[str] = None
        if method == HTTPMethod.GET.value and self._cache is not None and not bypass_cache:
            cache_key = make_cache_key(resource_path, body)
            cached = self._cache.get(cache_key)
            if cached is not CACHE_MISS:
                output.debug(f"Cache hit: {method} {resource_path}")
                return cached
            output.debug(f"Cache miss: {method} {resource_path}")

        url = self.url_for(resource_path)
        content = json.dumps(body)
        output.debug(f"{method} {url} {content}")

        request = self._client.build_request(
            method,
            url,
            content=content,
            headers={"Content-Type": "application/json"},
        )
        try:
            response = self._client.send(request, stream=True)
        except httpx.TransportError as exc:
            # No status line at all: reported as status 0.
            output.debug(f"No response from {url}: {exc}")
            raise InvalidHTTPStatus(0, "") from exc

        try:
            response.read()
        except httpx.TransportError as exc:
            raise ServerNotAvailable(
                f"The server is not available: body of HTTP {response.status_code} lost ({exc})"
            ) from exc
        finally:
            response.close()

        output.debug(f"HTTP {response.status_code} from {url}")
        return self._interpret(response, cache_key)

    def _interpret(self, response: httpx.Response, cache_key: Optional[str]) -> Any:
        """Map an HTTP response onto a value or a typed exception."""
        status = response.status_code
        if status == 200:
            envelope = self._parse_envelope(response)
            if envelope.version != self.api_version:
                raise VersionMismatch(self.api_version, envelope.version)
            error = envelope.error
            if error is not None:
                raise ServerSideError(error.error, error.errorno)
            if cache_key is not None and self._cache is not None:
                self._cache.set(cache_key, envelope.data, time.time() + self._cache_ttl)
            return envelope.data
        elif status == 401:
            raise Unauthorized("User not authorized")
        else:
            raise InvalidHTTPStatus(status, response.text)

    def _parse_envelope(self, response: httpx.Response) -> ServerEnvelope:
        """Decode a 200 body into a :class:`~akhetclient.models.ServerEnvelope`."""
        if not response.content:
            raise ServerNotAvailable("The server is not available: empty response body")
        try:
            raw = response.json()
        except ValueError as exc:
            raise ServerNotAvailable(f"The server is not available: malformed JSON body ({exc})") from exc
        if not isinstance(raw, dict):
            raise ServerNotAvailable("The server is not available: response is not a JSON object")
        return ServerEnvelope.model_validate(raw)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.config.host!r}, "
            f"protocol={self.config.protocol!r}, cache={self._cache!r})"
        )
