"""Canonical Pydantic models shared across all akhetclient modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Client models** -- built once at startup and never mutated:
    :class:`ClientConfig` and :class:`CacheConfig`.

**Wire models** -- transient, created per call:
    :class:`ServerEnvelope`, :class:`ServerErrorData`,
    :class:`InstanceConfig` and :class:`ResolutionRequest`.

**CLI configuration models** -- serialised as JSON in the user's config
directory: :class:`RequestConfig`, :class:`OutputConfig`,
:class:`GlobalConfig` and :class:`Profile`.
"""

from __future__ import annotations

import enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from akhetclient.exceptions import InvalidProtocol

API_VERSION = "0.8"
"""Protocol revision this client speaks. Responses carrying any other version are rejected."""

DEFAULT_CACHE_TTL = 30


class Protocol(str, enum.Enum):
    """URL schemes the server can be reached over."""

    HTTP = "http"
    HTTPS = "https"


class HTTPMethod(str, enum.Enum):
    """Request methods understood by the Akhet API."""

    GET = "GET"
    POST = "POST"


def normalize_protocol(value: Any) -> str:
    """Lower-case *value* and check it names a supported scheme.

    Raises:
        InvalidProtocol: If the value is not ``http`` or ``https`` in any case.
    """
    if isinstance(value, Protocol):
        return value.value
    clean = str(value).lower()
    if clean not in (Protocol.HTTP.value, Protocol.HTTPS.value):
        raise InvalidProtocol(
            f"Invalid protocol {value!r}. You can use only HTTP or HTTPS"
        )
    return clean


# --- Client models ---


class ClientConfig(BaseModel):
    """Connection settings of a :class:`~akhetclient.client.RequestPipeline`.

    Immutable after construction. ``protocol`` is normalised to lower case;
    anything other than ``http``/``https`` raises
    :class:`~akhetclient.exceptions.InvalidProtocol` straight away.

    Example::

        ClientConfig(host="akhet.local", username="u", password="p", protocol="HTTPS")
    """

    model_config = ConfigDict(frozen=True)

    host: str
    username: str
    password: str = Field(repr=False)
    protocol: str = Field(default=Protocol.HTTP.value)
    api_version: str = Field(default=API_VERSION)

    @field_validator("protocol", mode="before")
    @classmethod
    def _check_protocol(cls, value: Any) -> str:
        return normalize_protocol(value)

    @property
    def base_url(self) -> str:
        """Fully qualified server root, e.g. ``https://akhet.local``."""
        return f"{self.protocol}://{self.host}"


class CacheBackendType(str, enum.Enum):
    """Cache backends a profile can select."""

    MEMCACHED = "memcached"
    DISK = "disk"


class CacheConfig(BaseModel):
    """GET response cache settings.

    The presence of a ``CacheConfig`` is what turns caching on; a profile
    without one never touches a cache.
    """

    backend: CacheBackendType = Field(
        default=CacheBackendType.MEMCACHED, description="Cache backend: memcached or disk"
    )
    cache_host: Optional[str] = Field(default=None, description="Memcached server hostname")
    cache_port: Optional[int] = Field(default=None, description="Memcached server port")
    ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL, description="Cache TTL in seconds")

    @model_validator(mode="after")
    def _check_memcached_target(self) -> CacheConfig:
        if self.backend == CacheBackendType.MEMCACHED and (
            self.cache_host is None or self.cache_port is None
        ):
            raise ValueError("memcached backend requires cache_host and cache_port")
        return self


# --- Wire models ---


class ServerErrorData(BaseModel):
    """Application-level error reported inside the envelope's ``data``."""

    error: str
    errorno: Any = None


class ServerEnvelope(BaseModel):
    """Top-level JSON object returned by the server on HTTP 200.

    ``data`` is either the call's result or an error object
    ``{"error": ..., "errorno": ...}``.
    """

    model_config = ConfigDict(extra="allow")

    version: Any = None
    data: Any = None

    @property
    def error(self) -> Optional[ServerErrorData]:
        """The server-side error carried in ``data``, or ``None`` on success."""
        if isinstance(self.data, dict) and self.data.get("error") is not None:
            return ServerErrorData(
                error=str(self.data["error"]),
                errorno=self.data.get("errorno"),
            )
        return None


class InstanceConfig(BaseModel):
    """Options accepted by ``POST instance``.

    Every field is optional and its value is forwarded as given; the
    server decides what it accepts. Only the fields that were given a
    non-null value end up in the request body (see :meth:`to_payload`).
    """

    model_config = ConfigDict(extra="forbid")

    user: Any = Field(default=None, description="Username in the Akhet system")
    image: Any = Field(default=None, description="Image to use")
    network: Any = Field(default=None, description="Network profile")
    resource: Any = Field(default=None, description="Resources flavor")
    enable_cuda: Any = Field(default=None, description="CUDA support")
    env: Any = Field(default=None, description="Environment variables")
    notimeout: Any = Field(default=None, description="Instance is persistent")
    shared: Any = Field(default=None, description="Instance is shared")
    uid: Any = Field(default=None, description="UID of the user")
    gids: Any = Field(default=None, description="GIDs of the user")
    storages: Any = Field(default=None, description="Storage directories")
    additional_ws: Any = Field(default=None, description="Additional websockets")
    additional_http: Any = Field(default=None, description="Additional HTTP endpoints")
    user_label: Any = Field(default=None, description="User display name")

    @classmethod
    def allowed_keys(cls) -> frozenset[str]:
        return frozenset(cls.model_fields)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> InstanceConfig:
        """Build an :class:`InstanceConfig` from a loose mapping.

        Keys that are not instance options are dropped with a warning on
        stderr. They never make the call fail.
        """
        from akhetclient.output import warning

        allowed = cls.allowed_keys()
        known: dict[str, Any] = {}
        for key, value in config.items():
            if key in allowed:
                known[key] = value
            else:
                warning(f"InstanceConfig: non existing {key!r} option ignored")
        return cls(**known)

    def to_payload(self) -> dict[str, Any]:
        """Return the request body: explicitly set, non-null fields only."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ResolutionRequest(BaseModel):
    """Body of ``POST instance-resolution``."""

    token: str
    width: int
    height: int


# --- CLI configuration models ---


class RequestConfig(BaseModel):
    """HTTP transport settings applied to every call made through a profile."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/akhet/config.json``.

    Loaded and saved by :func:`~akhetclient.config.load_global_config` and
    :func:`~akhetclient.config.save_global_config`.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Connection profile for one Akhet server, stored under ``profiles/``.

    The password is never stored in clear by default: ``password_source``
    names where to read it from (``env:VAR``, ``file:/path``, ``prompt``,
    ``value:LITERAL``),
    see :func:`~akhetclient.config.resolve_credential`.

    See Also:
        :func:`~akhetclient.config.load_profile`: Deserialise a profile by name.
        :func:`~akhetclient.config.save_profile`: Persist a profile to disk.
    """

    name: str
    host: str
    username: str
    password_source: str = Field(
        default="prompt",
        description="Credential source: env:VAR, file:/path, prompt, value:LITERAL",
    )
    protocol: str = Field(default=Protocol.HTTP.value)
    cache: Optional[CacheConfig] = None
    request: RequestConfig = Field(default_factory=RequestConfig)

    @field_validator("protocol", mode="before")
    @classmethod
    def _check_protocol(cls, value: Any) -> str:
        return normalize_protocol(value)
