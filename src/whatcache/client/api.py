"""The ``TrackerAPI`` capability protocol.

:class:`TrackerAPI` names every operation a Gazelle API client offers.  The
live :class:`~whatcache.client.gazelle.GazelleClient` implements it, the
caching :class:`~whatcache.facade.CachingClient` implements it by wrapping
another implementation, and tests substitute a recording double.  Code that
only needs to *use* the API should accept a ``TrackerAPI``.

Results are the decoded ``response`` member of the tracker's JSON envelope
(usually a ``dict``).  Their schema belongs to the tracker and is not
modelled here.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from whatcache.cache.fingerprint import Params


@runtime_checkable
class TrackerAPI(Protocol):
    """Operations of a Gazelle JSON API client."""

    def get_json(self, request_url: str) -> Any: ...

    def do(self, action: str, params: Optional[Params] = None) -> Any: ...

    def create_download_url(self, torrent_id: int) -> str: ...

    def login(self, username: str, password: str) -> None: ...

    def logout(self) -> None: ...

    def get_account(self) -> Any: ...

    def get_mailbox(self, params: Optional[Params] = None) -> Any: ...

    def get_conversation(self, conversation_id: int) -> Any: ...

    def get_notifications(self, params: Optional[Params] = None) -> Any: ...

    def get_announcements(self) -> Any: ...

    def get_subscriptions(self, params: Optional[Params] = None) -> Any: ...

    def get_categories(self) -> Any: ...

    def get_forum(self, forum_id: int, params: Optional[Params] = None) -> Any: ...

    def get_thread(self, thread_id: int, params: Optional[Params] = None) -> Any: ...

    def get_artist_bookmarks(self) -> Any: ...

    def get_torrent_bookmarks(self) -> Any: ...

    def get_artist(self, artist_id: int, params: Optional[Params] = None) -> Any: ...

    def get_request(self, request_id: int, params: Optional[Params] = None) -> Any: ...

    def get_torrent(self, torrent_id: int, params: Optional[Params] = None) -> Any: ...

    def get_torrent_group(self, group_id: int, params: Optional[Params] = None) -> Any: ...

    def get_user(self, user_id: int, params: Optional[Params] = None) -> Any: ...

    def search_torrents(self, search: str, params: Optional[Params] = None) -> Any: ...

    def search_requests(self, search: str, params: Optional[Params] = None) -> Any: ...

    def search_users(self, search: str, params: Optional[Params] = None) -> Any: ...

    def get_top_ten_torrents(self, params: Optional[Params] = None) -> Any: ...

    def get_top_ten_tags(self, params: Optional[Params] = None) -> Any: ...

    def get_top_ten_users(self, params: Optional[Params] = None) -> Any: ...

    def get_similar_artists(self, artist_id: int, limit: int) -> Any: ...
