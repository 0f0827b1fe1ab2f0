"""Cache commands -- inspect and prune the response store.

These commands open the store directly and never contact the tracker.
"""

from __future__ import annotations

import typer

from whatcache.output import info, print_table, success

cache_app = typer.Typer(no_args_is_help=True)


def _open_store(ctx: typer.Context):
    from whatcache.cache import ResponseStore
    from whatcache.config import default_store_dir, resolve_config

    obj = ctx.obj or {}
    config = resolve_config(
        cli_base_url=obj.get("base_url"),
        cli_cache_dir=obj.get("cache_dir"),
    )
    return config, ResponseStore(config.cache.directory or default_store_dir())


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the store location, record count, size, and staleness windows."""
    config, store = _open_store(ctx)
    with store:
        stats = store.stats()

    rows = [
        ["enabled", str(config.cache.enabled)],
        ["directory", stats["directory"]],
        ["records", str(stats["records"])],
        ["size_bytes", str(stats["size_bytes"])],
        ["staleness_seconds", str(config.cache.staleness_seconds)],
    ]
    for operation, seconds in sorted(config.cache.operation_staleness.items()):
        rows.append([f"staleness.{operation}", str(seconds)])
    print_table(["setting", "value"], rows, title="Response store")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every stored record.  Asks for confirmation unless ``--force``."""
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm("Remove all cached responses?"):
        info("Cancelled.")
        raise typer.Exit()

    _, store = _open_store(ctx)
    with store:
        removed = store.clear()
    success(f"Removed {removed} cached record(s).")


@cache_app.command("invalidate")
def cache_invalidate(
    ctx: typer.Context,
    operation: str = typer.Argument(help="Operation name, e.g. get_artist."),
) -> None:
    """Remove every stored record produced by one operation."""
    from whatcache.commands.fetch import OPERATIONS
    from whatcache.exceptions import InvalidUsageError

    name = operation.replace("-", "_")
    if name not in OPERATIONS:
        raise InvalidUsageError(f"Unknown operation '{operation}'")

    _, store = _open_store(ctx)
    with store:
        removed = store.invalidate_operation(name)
    success(f"Removed {removed} cached record(s) for {name}.")
