"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.fetchcache/`` on macOS and Windows.  See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **User config** -- one :class:`~fetchcache.models.ApiConfig` JSON file,
  read by :func:`load_config` and written by :func:`save_config`.
* **Project config** -- an optional ``./fetchcache.json`` whose keys are
  layered over the user config.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project and user config into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from fetchcache.exceptions import ConfigError
from fetchcache.models import ApiConfig

_APP_NAME = "fetchcache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "fetchcache.json"

ENV_BASE_URL = "FETCHCACHE_BASE_URL"
ENV_TIMEOUT_MS = "FETCHCACHE_TIMEOUT_MS"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from *env_var*, falling back to segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/fetchcache/`` (default ``~/.config/fetchcache/``).
    On macOS/Windows: ``~/.fetchcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/fetchcache/`` (default ``~/.local/share/fetchcache/``).
    On macOS/Windows: ``~/.fetchcache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using a temp file in the same directory + rename."""
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
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


# --- User config ---


def config_path() -> Path:
    """Path to the user config file."""
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, what: str) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {what} at {path}: expected a JSON object")
    return data


def load_config(path: Optional[Path] = None) -> ApiConfig:
    """Load the user configuration.

    Args:
        path: Config file to read; defaults to :func:`config_path`.

    Returns:
        The deserialised :class:`~fetchcache.models.ApiConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = path or config_path()
    if not path.is_file():
        return ApiConfig()
    data = _read_json(path, "config")
    try:
        return ApiConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ApiConfig, path: Optional[Path] = None) -> None:
    """Persist *config* atomically (to :func:`config_path` by default)."""
    data = config.model_dump(mode="json")
    _atomic_write(path or config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./fetchcache.json`` as a raw dict, or ``None`` if absent.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def _set_timeout(data: dict[str, Any], timeout_ms: int) -> None:
    request = data.get("request")
    if not isinstance(request, dict):
        raise ConfigError("Invalid configuration: 'request' must be a JSON object")
    request["timeout_ms"] = timeout_ms


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_timeout_ms: Optional[int] = None,
) -> ApiConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_base_url``, ``cli_timeout_ms``)
        2. Environment variables (``FETCHCACHE_BASE_URL``, ``FETCHCACHE_TIMEOUT_MS``)
        3. Project config (``./fetchcache.json``)
        4. User config (``~/.config/fetchcache/config.json``)
        5. Defaults

    Raises:
        ConfigError: On invalid files or a non-integer ``FETCHCACHE_TIMEOUT_MS``.
    """
    data = load_config().model_dump(mode="json")

    project = load_project_config()
    if project is not None:
        data = _deep_merge(data, project)

    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        data["base_url"] = env_base_url
    env_timeout = os.environ.get(ENV_TIMEOUT_MS)
    if env_timeout:
        try:
            timeout_ms = int(env_timeout)
        except ValueError:
            raise ConfigError(
                f"{ENV_TIMEOUT_MS} must be an integer, got: {env_timeout}"
            ) from None
        _set_timeout(data, timeout_ms)

    if cli_base_url is not None:
        data["base_url"] = cli_base_url
    if cli_timeout_ms is not None:
        _set_timeout(data, cli_timeout_ms)

    try:
        return ApiConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
