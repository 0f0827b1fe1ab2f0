"""The ``whatcache fetch`` command -- run one API operation through the cache.

Each operation of :class:`~whatcache.client.api.TrackerAPI` takes some of
four argument kinds.  :data:`OPERATIONS` records which ones so that one
command can dispatch to all of them:

* ``id`` -- the positional TARGET parsed as an integer,
* ``text`` -- the positional TARGET as a string (search text, action name),
* ``params`` -- the ``--param key=value`` options,
* ``limit`` -- the ``--limit`` option.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import typer

from whatcache.exceptions import ConfigError, InvalidUsageError

OPERATIONS: dict[str, tuple[str, ...]] = {
    "do": ("text", "params"),
    "get_account": (),
    "get_mailbox": ("params",),
    "get_conversation": ("id",),
    "get_notifications": ("params",),
    "get_announcements": (),
    "get_subscriptions": ("params",),
    "get_categories": (),
    "get_forum": ("id", "params"),
    "get_thread": ("id", "params"),
    "get_artist_bookmarks": (),
    "get_torrent_bookmarks": (),
    "get_artist": ("id", "params"),
    "get_request": ("id", "params"),
    "get_torrent": ("id", "params"),
    "get_torrent_group": ("id", "params"),
    "get_user": ("id", "params"),
    "search_torrents": ("text", "params"),
    "search_requests": ("text", "params"),
    "search_users": ("text", "params"),
    "get_top_ten_torrents": ("params",),
    "get_top_ten_tags": ("params",),
    "get_top_ten_users": ("params",),
    "get_similar_artists": ("id", "limit"),
}


def parse_params(pairs: list[str]) -> dict[str, Any]:
    """Turn ``["k=v", "k=w", "x=1"]`` into ``{"k": ["v", "w"], "x": "1"}``.

    Raises:
        InvalidUsageError: If an entry has no ``=``.
    """
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Expected key=value, got: {pair!r}")
        if key in params:
            existing = params[key]
            params[key] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            params[key] = value
    return params


def build_arguments(
    operation: str,
    target: Optional[str],
    params: dict[str, Any],
    limit: int,
) -> list[Any]:
    """Positional arguments for calling *operation* on a ``TrackerAPI``.

    Raises:
        InvalidUsageError: For an unknown operation, a missing or
            non-integer TARGET, or params given to an operation that takes
            none.
    """
    if operation not in OPERATIONS:
        raise InvalidUsageError(
            f"Unknown operation '{operation}'. "
            f"Choose from: {', '.join(sorted(OPERATIONS))}"
        )
    kinds = OPERATIONS[operation]
    if params and "params" not in kinds:
        raise InvalidUsageError(f"Operation '{operation}' does not take --param")

    args: list[Any] = []
    for kind in kinds:
        if kind in ("id", "text"):
            if target is None:
                raise InvalidUsageError(f"Operation '{operation}' needs a TARGET argument")
            if kind == "id":
                try:
                    args.append(int(target))
                except ValueError:
                    raise InvalidUsageError(
                        f"Operation '{operation}' needs a numeric id, got: {target}"
                    ) from None
            else:
                args.append(target)
        elif kind == "params":
            args.append(params)
        elif kind == "limit":
            args.append(limit)
    return args


def _username(config: Any) -> str:
    from whatcache.config import resolve_credential

    source = config.credentials.username_source
    if not source:
        raise ConfigError(
            "No username configured. Set credentials.username_source or WHATCACHE_USERNAME."
        )
    return resolve_credential(source, prompt="Username: ")


def _password_reader(config: Any) -> Callable[[], str]:
    from whatcache.config import resolve_credential

    source = config.credentials.password_source
    return lambda: resolve_credential(source, prompt="Password: ")


def fetch_command(
    ctx: typer.Context,
    operation: str = typer.Argument(help="Operation name, e.g. get_artist or search-torrents."),
    target: Optional[str] = typer.Argument(
        None, help="Resource id, search text, or (for 'do') the ajax action."
    ),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Query parameter as key=value. Repeatable."
    ),
    limit: int = typer.Option(10, "--limit", help="Result limit for get_similar_artists."),
    login: bool = typer.Option(
        True,
        "--login/--no-login",
        help="Log in with the configured credentials before contacting the tracker.",
    ),
) -> None:
    """Run one API operation, answering from the local cache when possible.

    Example::

        whatcache fetch get_artist 100
        whatcache fetch search-torrents "daft punk" -P format=FLAC
        whatcache fetch get_similar_artists 100 --limit 5
    """
    from whatcache import facade
    from whatcache.config import resolve_config
    from whatcache.output import debug, format_response

    obj = ctx.obj or {}
    name = operation.replace("-", "_")
    args = build_arguments(name, target, parse_params(param), limit)

    config = resolve_config(
        cli_base_url=obj.get("base_url"),
        cli_format=obj.get("format"),
        cli_cache_dir=obj.get("cache_dir"),
    )
    with facade.open_client(config) as client:
        if login:
            username = _username(config)
            debug(f"Will log in to {config.base_url} as {username} on a cache miss")
            client.login_on_demand(username, _password_reader(config))
        result = getattr(client, name)(*args)
        format_response(result)
