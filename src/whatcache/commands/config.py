"""Config commands -- view and modify the global configuration.

Provides the ``whatcache config`` sub-command group for reading, updating,
and resetting :class:`~whatcache.models.GlobalConfig`.  Settings control the
tracker URL, request behaviour, cache staleness, and credential sources.
"""

from __future__ import annotations

import json
from typing import Any

import typer

from whatcache.output import error, format_response, info, success

config_app = typer.Typer(no_args_is_help=True)

# Dict-valued settings whose entries may be added one key at a time.
_OPEN_MAPPINGS = frozenset({"cache.operation_staleness"})


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration (all precedence layers applied).

    Example::

        whatcache config show
        whatcache --json config show
    """
    from whatcache.config import get_config_dir, resolve_config

    obj = ctx.obj or {}
    config = resolve_config(
        cli_base_url=obj.get("base_url"),
        cli_cache_dir=obj.get("cache_dir"),
    )
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


def _coerce(key: str, current: Any, value: str) -> Any:
    """Convert *value* to the type of the setting it replaces."""
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes", "on")
    if isinstance(current, dict):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = None
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON object for {key}, got: {value}")
        return parsed
    if isinstance(current, int) or (current is None and key.rsplit(".", 1)[0] in _OPEN_MAPPINGS):
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Expected integer for {key}, got: {value}") from None
    return value


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted setting name, e.g. cache.staleness_seconds."),
    value: str = typer.Argument(help="New value."),
) -> None:
    """Change one setting in the user config file.

    The value takes the type of the setting it replaces.  A dict-valued
    setting takes a JSON object, and a key below one adds a single entry::

        whatcache config set base_url https://tracker.example/
        whatcache config set cache.staleness_seconds 600
        whatcache config set cache.operation_staleness.get_notifications 60
    """
    from whatcache.config import load_global_config, save_global_config
    from whatcache.models import GlobalConfig

    data = load_global_config().model_dump(mode="json")
    *path, leaf = key.split(".")

    section = data
    for part in path:
        section = section.get(part) if isinstance(section, dict) else None
        if not isinstance(section, dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
    if leaf not in section and ".".join(path) not in _OPEN_MAPPINGS:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        section[leaf] = _coerce(key, section.get(leaf), value)
        updated = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    save_global_config(updated)
    success(f"Set {key} = {section[leaf]}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset the user config to defaults.  Asks for confirmation unless ``--force``."""
    from whatcache.config import save_global_config
    from whatcache.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
