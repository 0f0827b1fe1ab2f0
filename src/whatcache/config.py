"""Where whatcache keeps its files, and how the effective settings are built.

Settings come from five layers, highest priority first:

1. CLI flags (``--base-url``, ``--cache-dir``, ``--json``/``--plain``)
2. ``WHATCACHE_*`` environment variables (see :data:`ENV_OVERRIDES`)
3. ``./whatcache.json`` in the working directory, deep-merged
4. the user file ``config.json`` in :func:`get_config_dir`
5. :class:`~whatcache.models.GlobalConfig` defaults

Directories follow the XDG base directory layout on Linux and the BSDs and
live under ``~/.whatcache/`` elsewhere.  The user file is always replaced
atomically so a crash never leaves half-written JSON behind.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from whatcache.exceptions import ConfigError
from whatcache.models import GlobalConfig

_APP_NAME = "whatcache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "whatcache.json"

# kind -> (XDG variable, default below $HOME, subdirectory of ~/.whatcache)
_DIRECTORIES: dict[str, tuple[str, tuple[str, ...], Optional[str]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "logs"),
}

# Environment variable -> (section, field, value template)
ENV_OVERRIDES: dict[str, tuple[Optional[str], str, str]] = {
    "WHATCACHE_BASE_URL": (None, "base_url", "{}"),
    "WHATCACHE_CACHE_DIR": ("cache", "directory", "{}"),
    "WHATCACHE_USERNAME": ("credentials", "username_source", "value:{}"),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_segments, fallback_sub = _DIRECTORIES[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or str(Path.home().joinpath(*home_segments))
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``.  Created on first use."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Directory for cached data.  Created on first use."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs.  Created on first use."""
    return _app_dir("data")


def default_store_dir() -> Path:
    """Response store location used when ``cache.directory`` is unset."""
    return get_cache_dir() / "responses"


# --- Files ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* via a sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def _validate(data: Any, what: str) -> GlobalConfig:
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid {what}: {exc}") from exc


def load_global_config() -> GlobalConfig:
    """Read the user config file, or return defaults when there is none.

    Raises:
        ConfigError: If the file is not valid JSON or not a valid config.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    if not path.is_file():
        return GlobalConfig()
    return _validate(_read_json(path, "global config"), f"global config at {path}")


def save_global_config(config: GlobalConfig) -> None:
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(get_config_dir() / _CONFIG_FILENAME, text)


def load_project_config() -> Optional[dict[str, Any]]:
    """Read ``./whatcache.json`` if present.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            value = _deep_merge(merged[key], value)
        merged[key] = value
    return merged


# --- Effective config ---


def _set_field(config: GlobalConfig, section: Optional[str], field: str, value: str) -> None:
    target = getattr(config, section) if section else config
    setattr(target, field, value)


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_format: Optional[str] = None,
    cli_cache_dir: Optional[str] = None,
) -> GlobalConfig:
    """Layer project config, environment, and CLI flags over the user config.

    Raises:
        ConfigError: If any file layer is invalid.
    """
    config = load_global_config()

    project = load_project_config()
    if project is not None:
        config = _validate(_deep_merge(config.model_dump(mode="json"), project), "project config")

    for env_var, (section, field, template) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            _set_field(config, section, field, template.format(value))

    flags = [
        (None, "base_url", cli_base_url),
        ("cache", "directory", cli_cache_dir),
        ("output", "format", cli_format),
    ]
    for section, field, value in flags:
        if value is not None:
            _set_field(config, section, field, value)

    return config


# --- Credentials ---


def _from_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise ConfigError(f"Environment variable '{name}' is not set (source: env:{name})")
    return value


def _from_file(name: str) -> str:
    path = Path(name).expanduser()
    if not path.is_file():
        raise ConfigError(f"Credential file not found: {path} (source: file:{name})")
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc


_CREDENTIAL_SOURCES: dict[str, Callable[[str], str]] = {
    "env": _from_env,
    "file": _from_file,
    "value": lambda text: text,
}


def resolve_credential(source: str, prompt: str = "Enter credential: ") -> str:
    """Resolve a credential source descriptor to its value.

    ``env:NAME`` reads an environment variable, ``file:PATH`` reads a file
    (surrounding whitespace stripped), ``value:TEXT`` is literal, and
    ``prompt`` asks on the terminal without echo.

    Raises:
        ConfigError: If the source is unknown or cannot be read, or
            ``prompt`` is used without a TTY on stdin.
    """
    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY (source: prompt)")
        return getpass.getpass(prompt)

    kind, sep, rest = source.partition(":")
    reader = _CREDENTIAL_SOURCES.get(kind)
    if not sep or reader is None:
        raise ConfigError(f"Unknown credential source format: {source}")
    return reader(rest)
