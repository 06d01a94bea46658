"""Configuration management with XDG paths, atomic writes, and profile resolution.

This module handles all persistent configuration of the ``akhet`` CLI:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.akhet/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- a single :class:`~akhetclient.models.GlobalConfig`
  JSON file storing defaults (active profile, output format).
* **Profiles** -- one JSON file per Akhet server, each deserialised into a
  :class:`~akhetclient.models.Profile`.
* **Profile resolution** -- :func:`resolve_config` picks the active profile
  from the CLI flag, the ``AKHET_PROFILE`` environment variable, or the
  global default.
* **Credential resolution** -- :func:`resolve_credential` reads the server
  password from env vars, files, interactive prompts, or a literal.
* **Client construction** -- :func:`build_client` turns a profile into a
  ready :class:`~akhetclient.client.AkhetClient` with its cache attached.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from akhetclient.exceptions import ConfigError
from akhetclient.models import CacheBackendType, GlobalConfig, Profile

if TYPE_CHECKING:
    from akhetclient.client import AkhetClient

_APP_NAME = "akhet"
_CONFIG_FILENAME = "config.json"
_PROFILE_ENV_VAR = "AKHET_PROFILE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/akhet/`` (default ``~/.config/akhet/``).
    On macOS/Windows: ``~/.akhet/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory used by the disk cache backend.

    On Linux/BSD: ``$XDG_CACHE_HOME/akhet/`` (default ``~/.cache/akhet/``).
    On macOS/Windows: ``~/.akhet/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/akhet/`` (default ``~/.local/share/akhet/``).
    On macOS/Windows: ``~/.akhet/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return the profiles directory (``<config_dir>/profiles/``), creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration.

    Returns:
        The deserialised :class:`~akhetclient.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names, sorted alphabetically."""
    return sorted(
        p.stem for p in get_profiles_dir().glob("*.json") if p.is_file()
    )


def load_profile(name: str) -> Profile:
    """Load and validate a profile from disk.

    Raises:
        ConfigError: If the profile does not exist, contains invalid JSON,
            or fails validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Profile.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Persist a profile atomically; the file name is derived from ``profile.name``."""
    data = profile.model_dump(mode="json")
    _atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a profile's JSON file.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Precedence resolution ---


def resolve_config(
    cli_profile: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[Profile]]:
    """Resolve the global config and the active profile.

    Profile precedence (high to low):
        1. CLI flag (``cli_profile``)
        2. ``AKHET_PROFILE`` environment variable
        3. ``default_profile`` in the global config
        4. The only existing profile, if ``auto_select_single_profile`` is on

    Returns:
        A tuple of ``(global_config, active_profile_or_None)``.
    """
    global_cfg = load_global_config()

    resolved_name: Optional[str] = global_cfg.default_profile
    env_profile = os.environ.get(_PROFILE_ENV_VAR)
    if env_profile:
        resolved_name = env_profile
    if cli_profile is not None:
        resolved_name = cli_profile

    if resolved_name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            resolved_name = profiles[0]

    profile: Optional[Profile] = None
    if resolved_name is not None:
        profile = load_profile(resolved_name)

    return global_cfg, profile


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts the user interactively (requires a TTY)
        - ``"value:SECRET"`` -- the literal text after the prefix

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Akhet password: ")

    if source.startswith("value:"):
        return source[6:]

    raise ConfigError(f"Unknown credential source format: {source}")


# --- Client construction ---


def build_client(profile: Profile, use_cache: bool = True) -> AkhetClient:
    """Create an :class:`~akhetclient.client.AkhetClient` for *profile*.

    The profile's cache section selects the backend: ``memcached`` goes
    through :meth:`~akhetclient.client.RequestPipeline.enable_cache`,
    ``disk`` uses a :class:`~akhetclient.cache.DiskCache` under
    :func:`get_cache_dir`.

    Args:
        profile: The connection profile.
        use_cache: Set to ``False`` to leave caching off regardless of the
            profile (``--no-cache``).
    """
    from akhetclient.cache import DiskCache
    from akhetclient.client import AkhetClient

    client = AkhetClient(
        profile.host,
        profile.username,
        resolve_credential(profile.password_source),
        profile.protocol,
        timeout=profile.request.timeout,
        verify_ssl=profile.request.verify_ssl,
    )
    cache = profile.cache
    if use_cache and cache is not None:
        if cache.backend == CacheBackendType.DISK:
            client.use_cache(DiskCache(get_cache_dir() / profile.name), cache.ttl_seconds)
        else:
            if cache.cache_host is None or cache.cache_port is None:
                client.close()
                raise ConfigError(
                    f"Profile '{profile.name}': memcached cache needs cache_host and cache_port"
                )
            client.enable_cache(cache.cache_host, cache.cache_port, cache.ttl_seconds)
    return client
