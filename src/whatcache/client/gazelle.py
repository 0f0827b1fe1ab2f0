"""Live Gazelle JSON API client built on :mod:`httpx`.

:class:`GazelleClient` talks to a Gazelle tracker (What.CD and its
descendants).  It implements :class:`~whatcache.client.api.TrackerAPI`.

- **Session handling** -- ``login.php`` sets the session cookie, kept in
  the underlying :class:`httpx.Client` cookie jar.  The account's
  ``authkey`` and ``passkey`` are fetched right after login for
  ``logout.php`` and download URLs.
- **Envelope decoding** -- ``ajax.php`` answers with
  ``{"status": "success", "response": ...}``.  The ``response`` member is
  returned.  A failure status or a non-JSON body raises
  :class:`~whatcache.exceptions.APIError`.
- **Retry with backoff** -- 5xx responses and network errors are retried
  with exponential delay (1 s, 2 s, 4 s, ...) up to
  :attr:`~whatcache.models.RequestConfig.max_retries` times.
- **Error mapping** -- 401/403, 404, and other error statuses raise
  :class:`~whatcache.exceptions.AuthError`,
  :class:`~whatcache.exceptions.NotFoundError`, and
  :class:`~whatcache.exceptions.ServerError`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from whatcache.cache.fingerprint import Params, normalize_params
from whatcache.exceptions import (
    APIError,
    AuthError,
    ConnectionError_,
    NotFoundError,
    ServerError,
)
from whatcache.models import RequestConfig

logger = logging.getLogger(__name__)


class GazelleClient:
    """Synchronous client for a Gazelle tracker's JSON API.

    Args:
        base_url: Tracker root, e.g. ``"https://tracker.example/"``.
        user_agent: ``User-Agent`` header sent with every request.
        request: Timeout, SSL, and retry settings.
        transport: Optional :mod:`httpx` transport, used by tests to stub
            the network.

    Example::

        with GazelleClient("https://tracker.example/", "whatcache/0.1") as api:
            api.login("user", "secret")
            group = api.get_torrent_group(72189, {})
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        request: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._config = request or RequestConfig()
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )
        self._authkey: Optional[str] = None
        self._passkey: Optional[str] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> GazelleClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying :class:`httpx.Client`."""
        self._client.close()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_logged_in(self) -> bool:
        """Whether a login succeeded and no logout happened since."""
        return self._authkey is not None

    # ------------------------------------------------------------------ #
    # Generic requests
    # ------------------------------------------------------------------ #

    def ping(self) -> None:
        """Send one GET to the tracker root, without retries.

        Raises:
            ConnectionError_: If the tracker cannot be reached.
        """
        try:
            self._client.get("")
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Cannot reach {self._base_url}: {exc}") from exc

    def get_json(self, request_url: str) -> Any:
        """GET *request_url* and return the decoded ``response`` member.

        Args:
            request_url: Absolute URL, or a path relative to the base URL.
        """
        response = self._send("GET", request_url)
        return self._decode(response)

    def do(self, action: str, params: Optional[Params] = None) -> Any:
        """Call ``ajax.php?action=<action>`` with *params*."""
        query: dict[str, Any] = {"action": action}
        query.update(normalize_params(params))
        response = self._send("GET", "ajax.php", params=query)
        return self._decode(response, action)

    def create_download_url(self, torrent_id: int) -> str:
        """Build the ``torrents.php`` download URL for *torrent_id*.

        Raises:
            AuthError: If no session is active; the URL embeds the
                account's ``authkey`` and ``passkey``.
        """
        if self._authkey is None or self._passkey is None:
            raise AuthError("Not logged in: download URLs need an authkey and passkey")
        query = urlencode({
            "action": "download",
            "id": torrent_id,
            "authkey": self._authkey,
            "torrent_pass": self._passkey,
        })
        return f"{self._base_url}torrents.php?{query}"

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    def login(self, username: str, password: str) -> None:
        """Log in and remember the account's ``authkey`` and ``passkey``.

        Raises:
            AuthError: If the tracker rejects the credentials.
            ConnectionError_: If the tracker cannot be reached.
        """
        self._send(
            "POST",
            "login.php",
            data={"username": username, "password": password, "keeplogged": "1"},
        )
        try:
            account = self.get_account()
        except (APIError, AuthError, NotFoundError) as exc:
            self._clear_session()
            raise AuthError(f"Login failed for user '{username}'") from exc
        if not isinstance(account, dict) or not account.get("authkey"):
            self._clear_session()
            raise AuthError(f"Login failed for user '{username}': no authkey returned")
        self._authkey = str(account["authkey"])
        self._passkey = str(account.get("passkey") or "") or None
        logger.debug("Logged in to %s as %s", self._base_url, username)

    def logout(self) -> None:
        """End the session via ``logout.php``.

        Raises:
            AuthError: If no session is active.
        """
        if self._authkey is None:
            raise AuthError("Not logged in")
        try:
            self._send("GET", "logout.php", params={"auth": self._authkey})
        finally:
            self._clear_session()

    def _clear_session(self) -> None:
        self._authkey = None
        self._passkey = None
        self._client.cookies.clear()

    # ------------------------------------------------------------------ #
    # Typed operations
    # ------------------------------------------------------------------ #

    def get_account(self) -> Any:
        return self.do("index")

    def get_mailbox(self, params: Optional[Params] = None) -> Any:
        return self.do("inbox", params)

    def get_conversation(self, conversation_id: int) -> Any:
        return self.do("inbox", {"type": "viewconv", "id": conversation_id})

    def get_notifications(self, params: Optional[Params] = None) -> Any:
        return self.do("notifications", params)

    def get_announcements(self) -> Any:
        return self.do("announcements")

    def get_subscriptions(self, params: Optional[Params] = None) -> Any:
        return self.do("subscriptions", params)

    def get_categories(self) -> Any:
        return self.do("forum", {"type": "main"})

    def get_forum(self, forum_id: int, params: Optional[Params] = None) -> Any:
        return self.do("forum", _merge(params, type="viewforum", forumid=forum_id))

    def get_thread(self, thread_id: int, params: Optional[Params] = None) -> Any:
        return self.do("forum", _merge(params, type="viewthread", threadid=thread_id))

    def get_artist_bookmarks(self) -> Any:
        return self.do("bookmarks", {"type": "artists"})

    def get_torrent_bookmarks(self) -> Any:
        return self.do("bookmarks", {"type": "torrents"})

    def get_artist(self, artist_id: int, params: Optional[Params] = None) -> Any:
        return self.do("artist", _merge(params, id=artist_id))

    def get_request(self, request_id: int, params: Optional[Params] = None) -> Any:
        return self.do("request", _merge(params, id=request_id))

    def get_torrent(self, torrent_id: int, params: Optional[Params] = None) -> Any:
        return self.do("torrent", _merge(params, id=torrent_id))

    def get_torrent_group(self, group_id: int, params: Optional[Params] = None) -> Any:
        return self.do("torrentgroup", _merge(params, id=group_id))

    def get_user(self, user_id: int, params: Optional[Params] = None) -> Any:
        return self.do("user", _merge(params, id=user_id))

    def search_torrents(self, search: str, params: Optional[Params] = None) -> Any:
        return self.do("browse", _merge(params, searchstr=search))

    def search_requests(self, search: str, params: Optional[Params] = None) -> Any:
        return self.do("requests", _merge(params, search=search))

    def search_users(self, search: str, params: Optional[Params] = None) -> Any:
        return self.do("usersearch", _merge(params, search=search))

    def get_top_ten_torrents(self, params: Optional[Params] = None) -> Any:
        return self.do("top10", _merge(params, type="torrents"))

    def get_top_ten_tags(self, params: Optional[Params] = None) -> Any:
        return self.do("top10", _merge(params, type="tags"))

    def get_top_ten_users(self, params: Optional[Params] = None) -> Any:
        return self.do("top10", _merge(params, type="users"))

    def get_similar_artists(self, artist_id: int, limit: int) -> Any:
        return self.do("similar_artists", {"id": artist_id, "limit": limit})

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request with exponential-backoff retry, then map error statuses."""
        max_retries = self._config.max_retries

        for attempt in range(max_retries + 1):
            try:
                response = self._client.request(method, url, params=params, data=data)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    logger.debug(
                        "Connection error: %s, retrying in %ss (attempt %d/%d)",
                        exc, delay, attempt + 1, max_retries,
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt  # 1, 2, 4, ...
                logger.debug(
                    "Server error %d, retrying in %ss (attempt %d/%d)",
                    response.status_code, delay, attempt + 1, max_retries,
                )
                time.sleep(delay)
                continue

            self._map_response_error(response)
            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    @staticmethod
    def _map_response_error(response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        msg = ""
        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = str(detail.get("error") or detail.get("message") or "")
        except ValueError:
            msg = response.text[:200] if response.text else ""

        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"
        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)

    @staticmethod
    def _decode(response: httpx.Response, action: Optional[str] = None) -> Any:
        """Unwrap a ``{"status": ..., "response": ...}`` envelope."""
        try:
            envelope = response.json()
        except ValueError as exc:
            raise APIError(
                f"Malformed response from {response.request.url}: not JSON", action
            ) from exc
        if not isinstance(envelope, dict):
            raise APIError("Malformed response: expected a JSON object", action)
        if envelope.get("status") != "success":
            reason = envelope.get("error") or "unknown error"
            raise APIError(f"API request failed: {reason}", action)
        return envelope.get("response")


def _merge(params: Optional[Params], **fixed: Any) -> dict[str, Any]:
    """Copy *params* and set the operation's fixed query parameters on top."""
    merged: dict[str, Any] = dict(params or {})
    merged.update(fixed)
    return merged
