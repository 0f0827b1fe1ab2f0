"""Caching facade over a :class:`~whatcache.client.api.TrackerAPI`.

:class:`CachingClient` exposes the same operations as the client it wraps.
Each data-retrieval operation runs the same steps:

1. derive a fingerprint from the operation name, its arguments, its params,
   and (for per-user data) the logged-in username;
2. return the stored payload if the record is inside its staleness window;
3. otherwise call the wrapped client with the identical arguments, store the
   result, and return the wrapped client's own result object.

Failures from the wrapped client propagate unchanged and nothing is stored.
Stale records are never served as a fallback.  ``login``, ``logout``,
``get_json`` and ``create_download_url`` always go straight through.
:meth:`CachingClient.login_on_demand` defers the login until the first
call that misses the store.

:func:`open_client` builds the whole stack from a
:class:`~whatcache.models.GlobalConfig`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Callable, Optional

import httpx

from whatcache.cache.fingerprint import Params, fingerprint
from whatcache.cache.store import ResponseStore, utcnow
from whatcache.client.api import TrackerAPI
from whatcache.client.gazelle import GazelleClient
from whatcache.exceptions import ConnectionError_, ConstructionError, StoreError
from whatcache.models import CachedRecord, CacheConfig, GlobalConfig

logger = logging.getLogger(__name__)

# Operations whose results depend on who is logged in.
SESSION_SCOPED_OPERATIONS = frozenset({
    "get_account",
    "get_mailbox",
    "get_conversation",
    "get_notifications",
    "get_subscriptions",
    "get_artist_bookmarks",
    "get_torrent_bookmarks",
})


class CachingClient:
    """A :class:`~whatcache.client.api.TrackerAPI` that caches responses locally.

    Args:
        api: The client to delegate to.
        store: The response store.  Owned by the caller until
            :meth:`close` is called, which closes it.
        config: Cache settings.  When ``config.enabled`` is ``False`` every
            call is forwarded without touching the store.
    """

    def __init__(
        self,
        api: TrackerAPI,
        store: ResponseStore,
        config: Optional[CacheConfig] = None,
    ) -> None:
        self._api = api
        self._store = store
        self._config = config or CacheConfig()
        self._username: Optional[str] = None
        self._pending_login: Optional[tuple[str, Callable[[], str]]] = None

    @property
    def api(self) -> TrackerAPI:
        """The wrapped client."""
        return self._api

    @property
    def store(self) -> ResponseStore:
        return self._store

    @property
    def username(self) -> Optional[str]:
        """Username that scopes per-user records, or ``None``."""
        return self._username

    def __enter__(self) -> CachingClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the store and, if it supports closing, the wrapped client."""
        try:
            close = getattr(self._api, "close", None)
            if callable(close):
                close()
        finally:
            self._store.close()

    # ------------------------------------------------------------------ #
    # Cache plumbing
    # ------------------------------------------------------------------ #

    def _scope_for(self, operation: str) -> Optional[str]:
        if operation in SESSION_SCOPED_OPERATIONS:
            return self._username
        return None

    def fingerprint_for(
        self,
        operation: str,
        args: Sequence[Any] = (),
        params: Optional[Params] = None,
    ) -> str:
        """Fingerprint a call to *operation* as this client would store it."""
        return fingerprint(operation, args, params, self._scope_for(operation))

    def _upstream(self, fetch: Callable[[], Any]) -> Any:
        if self._pending_login is not None:
            username, password = self._pending_login
            self.login(username, password())
        return fetch()

    def _cached(
        self,
        operation: str,
        args: Sequence[Any],
        params: Optional[Params],
        fetch: Callable[[], Any],
    ) -> Any:
        if not self._config.enabled:
            return self._upstream(fetch)

        key = self.fingerprint_for(operation, args, params)
        max_age = self._config.staleness_for(operation)
        try:
            record = self._store.lookup(key, max_age)
        except StoreError as exc:
            logger.warning("Cache lookup failed for %s: %s", operation, exc)
            record = None
        if record is not None:
            logger.debug("Cache hit: %s %s", operation, key[:12])
            return record.payload

        logger.debug("Cache miss: %s %s", operation, key[:12])
        result = self._upstream(fetch)

        record = CachedRecord(
            fingerprint=key,
            operation=operation,
            captured_at=utcnow(),
            payload=result,
        )
        try:
            self._store.save(record)
        except StoreError as exc:
            logger.warning("Cache store failed for %s: %s", operation, exc)
        return result

    # ------------------------------------------------------------------ #
    # Cache maintenance
    # ------------------------------------------------------------------ #

    def invalidate(
        self,
        operation: str,
        *args: Any,
        params: Optional[Params] = None,
    ) -> bool:
        """Drop the stored record for one call.

        Example::

            client.invalidate("get_artist", 100, params={})
        """
        return self._store.invalidate(self.fingerprint_for(operation, args, params))

    def invalidate_operation(self, operation: str) -> int:
        """Drop every stored record of *operation*.  Returns the count removed."""
        return self._store.invalidate_operation(operation)

    def clear_cache(self) -> int:
        """Drop every stored record.  Returns the count removed."""
        return self._store.clear()

    def cache_stats(self) -> dict[str, Any]:
        stats = {"enabled": self._config.enabled}
        stats.update(self._store.stats())
        stats["staleness_seconds"] = self._config.staleness_seconds
        return stats

    # ------------------------------------------------------------------ #
    # Pass-through operations
    # ------------------------------------------------------------------ #

    def get_json(self, request_url: str) -> Any:
        return self._upstream(lambda: self._api.get_json(request_url))

    def create_download_url(self, torrent_id: int) -> str:
        return self._upstream(lambda: self._api.create_download_url(torrent_id))

    def login(self, username: str, password: str) -> None:
        self._api.login(username, password)
        self._pending_login = None
        self._username = username

    def login_on_demand(self, username: str, password: Callable[[], str]) -> None:
        """Scope per-user records to *username* and defer the login itself.

        No request is made here.  The first call that has to reach the
        tracker logs in first, asking *password* for the password at that
        point, so cache hits work offline and never prompt.
        """
        self._username = username
        self._pending_login = (username, password)

    def logout(self) -> None:
        if self._pending_login is not None:
            # the deferred login never happened, so there is no session
            self._pending_login = None
            self._username = None
            return
        self._api.logout()
        self._username = None

    # ------------------------------------------------------------------ #
    # Cached operations
    # ------------------------------------------------------------------ #

    def do(self, action: str, params: Optional[Params] = None) -> Any:
        return self._cached(
            "do", (action,), params, lambda: self._api.do(action, params)
        )

    def get_account(self) -> Any:
        return self._cached("get_account", (), None, self._api.get_account)

    def get_mailbox(self, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_mailbox", (), params, lambda: self._api.get_mailbox(params)
        )

    def get_conversation(self, conversation_id: int) -> Any:
        return self._cached(
            "get_conversation",
            (conversation_id,),
            None,
            lambda: self._api.get_conversation(conversation_id),
        )

    def get_notifications(self, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_notifications", (), params, lambda: self._api.get_notifications(params)
        )

    def get_announcements(self) -> Any:
        return self._cached("get_announcements", (), None, self._api.get_announcements)

    def get_subscriptions(self, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_subscriptions", (), params, lambda: self._api.get_subscriptions(params)
        )

    def get_categories(self) -> Any:
        return self._cached("get_categories", (), None, self._api.get_categories)

    def get_forum(self, forum_id: int, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_forum", (forum_id,), params, lambda: self._api.get_forum(forum_id, params)
        )

    def get_thread(self, thread_id: int, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_thread",
            (thread_id,),
            params,
            lambda: self._api.get_thread(thread_id, params),
        )

    def get_artist_bookmarks(self) -> Any:
        return self._cached(
            "get_artist_bookmarks", (), None, self._api.get_artist_bookmarks
        )

    def get_torrent_bookmarks(self) -> Any:
        return self._cached(
            "get_torrent_bookmarks", (), None, self._api.get_torrent_bookmarks
        )

    def get_artist(self, artist_id: int, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_artist",
            (artist_id,),
            params,
            lambda: self._api.get_artist(artist_id, params),
        )

    def get_request(self, request_id: int, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_request",
            (request_id,),
            params,
            lambda: self._api.get_request(request_id, params),
        )

    def get_torrent(self, torrent_id: int, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_torrent",
            (torrent_id,),
            params,
            lambda: self._api.get_torrent(torrent_id, params),
        )

    def get_torrent_group(self, group_id: int, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_torrent_group",
            (group_id,),
            params,
            lambda: self._api.get_torrent_group(group_id, params),
        )

    def get_user(self, user_id: int, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_user", (user_id,), params, lambda: self._api.get_user(user_id, params)
        )

    def search_torrents(self, search: str, params: Optional[Params] = None) -> Any:
        return self._cached(
            "search_torrents",
            (search,),
            params,
            lambda: self._api.search_torrents(search, params),
        )

    def search_requests(self, search: str, params: Optional[Params] = None) -> Any:
        return self._cached(
            "search_requests",
            (search,),
            params,
            lambda: self._api.search_requests(search, params),
        )

    def search_users(self, search: str, params: Optional[Params] = None) -> Any:
        return self._cached(
            "search_users",
            (search,),
            params,
            lambda: self._api.search_users(search, params),
        )

    def get_top_ten_torrents(self, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_top_ten_torrents", (), params, lambda: self._api.get_top_ten_torrents(params)
        )

    def get_top_ten_tags(self, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_top_ten_tags", (), params, lambda: self._api.get_top_ten_tags(params)
        )

    def get_top_ten_users(self, params: Optional[Params] = None) -> Any:
        return self._cached(
            "get_top_ten_users", (), params, lambda: self._api.get_top_ten_users(params)
        )

    def get_similar_artists(self, artist_id: int, limit: int) -> Any:
        return self._cached(
            "get_similar_artists",
            (artist_id, limit),
            None,
            lambda: self._api.get_similar_artists(artist_id, limit),
        )


def _validate_base_url(base_url: str) -> None:
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConstructionError(f"Invalid base URL '{base_url}': {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConstructionError(
            f"Invalid base URL '{base_url}': expected an http(s) URL with a host"
        )


def open_client(
    config: GlobalConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> CachingClient:
    """Build a :class:`CachingClient` over a live :class:`GazelleClient`.

    Args:
        config: Effective configuration, usually from
            :func:`~whatcache.config.resolve_config`.
        transport: Optional :mod:`httpx` transport for the live client.

    Returns:
        A ready-to-use caching client.  Close it (or use it as a context
        manager) to release the store and the HTTP connection pool.

    Raises:
        ConstructionError: If the base URL is not an http(s) URL, or
            ``probe_on_connect`` is set and the tracker cannot be reached.
        StoreError: If the response store cannot be opened.
    """
    from whatcache.config import default_store_dir

    _validate_base_url(config.base_url)

    directory = config.cache.directory or default_store_dir()
    store = ResponseStore(directory)

    try:
        api = GazelleClient(config.base_url, config.user_agent, config.request, transport)
    except BaseException:
        store.close()
        raise
    if config.request.probe_on_connect:
        try:
            api.ping()
        except ConnectionError_ as exc:
            api.close()
            store.close()
            raise ConstructionError(str(exc)) from exc

    logger.debug("Opened caching client for %s (store: %s)", config.base_url, directory)
    return CachingClient(api, store, config.cache)
