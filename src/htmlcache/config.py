"""Configuration loading with XDG paths and precedence resolution.

Cache options can come from four places.  :func:`resolve_config` merges
them, highest precedence first:

1. Explicit keyword overrides (CLI flags, library callers).
2. Environment variables ``HTMLCACHE_MAX``, ``HTMLCACHE_MAX_SIZE_MB``,
   ``HTMLCACHE_TTL_MS``, ``HTMLCACHE_DEBUG``, ``HTMLCACHE_CHUNK_BYTES``,
   ``HTMLCACHE_FETCH_TIMEOUT`` and ``HTMLCACHE_SINGLE_FLIGHT``.
3. Project config -- ``./htmlcache.json`` or an explicit path.
4. User config -- ``$XDG_CONFIG_HOME/htmlcache/config.json`` on Linux/BSD,
   ``~/.htmlcache/config.json`` elsewhere.

Defaults from :class:`~htmlcache.models.HtmlCacheConfig` fill the rest.
The merged options are validated once; any problem raises
:class:`~htmlcache.exceptions.ConfigError`.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Mapping, Optional

from htmlcache.exceptions import ConfigError
from htmlcache.models import OPTION_ALIASES, HtmlCacheConfig

_APP_NAME = "htmlcache"
_CONFIG_FILENAME = "config.json"
PROJECT_CONFIG_FILENAME = "htmlcache.json"
ENV_PREFIX = "HTMLCACHE_"

_ENV_OPTIONS = {
    "MAX": "max_entries",
    "MAX_SIZE_MB": "max_size_mb",
    "TTL_MS": "ttl_ms",
    "DEBUG": "debug",
    "CHUNK_BYTES": "chunk_bytes",
    "FETCH_TIMEOUT": "fetch_timeout",
    "SINGLE_FLIGHT": "single_flight",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the user configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/htmlcache/`` (default ``~/.config/htmlcache/``).
    On macOS/Windows: ``~/.htmlcache/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def user_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


# --- File and environment layers ---


def _read_json_options(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return data


def load_user_config() -> dict[str, Any]:
    """Options from the user config file, or ``{}`` when it does not exist."""
    path = user_config_path()
    if not path.is_file():
        return {}
    return _read_json_options(path)


def load_project_config(path: str | Path | None = None) -> dict[str, Any]:
    """Options from the project config file.

    Args:
        path: Explicit file to read.  When omitted, ``./htmlcache.json`` is
            used if present.

    Raises:
        ConfigError: If an explicit *path* does not exist, or the file is
            not a JSON object.
    """
    if path is not None:
        explicit = Path(path)
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return _read_json_options(explicit)

    candidate = Path.cwd() / PROJECT_CONFIG_FILENAME
    if not candidate.is_file():
        return {}
    return _read_json_options(candidate)


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Options from ``HTMLCACHE_*`` environment variables.

    Values are left as strings; pydantic coerces them during validation.
    Empty variables are ignored.
    """
    env = os.environ if environ is None else environ
    options: dict[str, Any] = {}
    for suffix, field in _ENV_OPTIONS.items():
        value = env.get(f"{ENV_PREFIX}{suffix}", "")
        if value:
            options[field] = value
    return options


def _normalize(options: Mapping[str, Any]) -> dict[str, Any]:
    """Map short option aliases (``max``, ``ttl``...) onto field names."""
    return {OPTION_ALIASES.get(key, key): value for key, value in options.items()}


# --- Precedence resolution ---


def resolve_config(path: str | Path | None = None, **overrides: Any) -> HtmlCacheConfig:
    """Resolve cache options with the full precedence chain.

    Overrides whose value is ``None`` are ignored, so unset CLI flags do not
    mask lower layers.

    Returns:
        A validated :class:`~htmlcache.models.HtmlCacheConfig`.

    Raises:
        ConfigError: On unreadable files or invalid merged options.
    """
    options: dict[str, Any] = {}
    options.update(_normalize(load_user_config()))
    options.update(_normalize(load_project_config(path)))
    options.update(load_env_config())
    options.update(_normalize({k: v for k, v in overrides.items() if v is not None}))
    return HtmlCacheConfig.build(**options)
