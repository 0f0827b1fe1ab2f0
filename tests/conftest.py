"""Shared test fixtures for whatcache.

Provides a recording :class:`~whatcache.client.api.TrackerAPI` double, a
response store in ``tmp_path``, isolated config directories, and output
state management.  These fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from whatcache.cache import ResponseStore
from whatcache.facade import CachingClient
from whatcache.models import CacheConfig
from whatcache.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# TrackerAPI test double
# ---------------------------------------------------------------------------


class RecordingAPI:
    """A ``TrackerAPI`` that records every call and returns canned results.

    By default each call returns a fresh dict naming the operation, its
    arguments, and a running call number, so a refetch is distinguishable
    from a cached answer.  Set ``results[name]`` to a value (or a callable
    taking the call's arguments) to override, or ``errors[name]`` to raise.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.results: dict[str, Any] = {}
        self.errors: dict[str, Exception] = {}
        self.last_result: Any = None
        self.closed = False

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [args for called, args in self.calls if called == name]

    def close(self) -> None:
        self.closed = True

    def _call(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]
        if name in self.results:
            result = self.results[name]
            result = result(*args) if callable(result) else result
        else:
            result = {"operation": name, "args": list(args), "call": len(self.calls)}
        self.last_result = result
        return result

    def get_json(self, request_url: str) -> Any:
        return self._call("get_json", request_url)

    def do(self, action: str, params: Optional[dict] = None) -> Any:
        return self._call("do", action, params)

    def create_download_url(self, torrent_id: int) -> str:
        self.calls.append(("create_download_url", (torrent_id,)))
        return f"https://tracker.example/torrents.php?action=download&id={torrent_id}"

    def login(self, username: str, password: str) -> None:
        self._call("login", username, password)

    def logout(self) -> None:
        self._call("logout")

    def get_account(self) -> Any:
        return self._call("get_account")

    def get_mailbox(self, params: Optional[dict] = None) -> Any:
        return self._call("get_mailbox", params)

    def get_conversation(self, conversation_id: int) -> Any:
        return self._call("get_conversation", conversation_id)

    def get_notifications(self, params: Optional[dict] = None) -> Any:
        return self._call("get_notifications", params)

    def get_announcements(self) -> Any:
        return self._call("get_announcements")

    def get_subscriptions(self, params: Optional[dict] = None) -> Any:
        return self._call("get_subscriptions", params)

    def get_categories(self) -> Any:
        return self._call("get_categories")

    def get_forum(self, forum_id: int, params: Optional[dict] = None) -> Any:
        return self._call("get_forum", forum_id, params)

    def get_thread(self, thread_id: int, params: Optional[dict] = None) -> Any:
        return self._call("get_thread", thread_id, params)

    def get_artist_bookmarks(self) -> Any:
        return self._call("get_artist_bookmarks")

    def get_torrent_bookmarks(self) -> Any:
        return self._call("get_torrent_bookmarks")

    def get_artist(self, artist_id: int, params: Optional[dict] = None) -> Any:
        return self._call("get_artist", artist_id, params)

    def get_request(self, request_id: int, params: Optional[dict] = None) -> Any:
        return self._call("get_request", request_id, params)

    def get_torrent(self, torrent_id: int, params: Optional[dict] = None) -> Any:
        return self._call("get_torrent", torrent_id, params)

    def get_torrent_group(self, group_id: int, params: Optional[dict] = None) -> Any:
        return self._call("get_torrent_group", group_id, params)

    def get_user(self, user_id: int, params: Optional[dict] = None) -> Any:
        return self._call("get_user", user_id, params)

    def search_torrents(self, search: str, params: Optional[dict] = None) -> Any:
        return self._call("search_torrents", search, params)

    def search_requests(self, search: str, params: Optional[dict] = None) -> Any:
        return self._call("search_requests", search, params)

    def search_users(self, search: str, params: Optional[dict] = None) -> Any:
        return self._call("search_users", search, params)

    def get_top_ten_torrents(self, params: Optional[dict] = None) -> Any:
        return self._call("get_top_ten_torrents", params)

    def get_top_ten_tags(self, params: Optional[dict] = None) -> Any:
        return self._call("get_top_ten_tags", params)

    def get_top_ten_users(self, params: Optional[dict] = None) -> Any:
        return self._call("get_top_ten_users", params)

    def get_similar_artists(self, artist_id: int, limit: int) -> Any:
        return self._call("get_similar_artists", artist_id, limit)


# ---------------------------------------------------------------------------
# Output state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager holds references to sys.stdout/sys.stderr taken at
    creation time, which go stale once CliRunner or capsys swaps them.
    """
    yield
    reset_output()


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Store and facade
# ---------------------------------------------------------------------------


@pytest.fixture
def api() -> RecordingAPI:
    return RecordingAPI()


@pytest.fixture
def store(tmp_path: Path) -> ResponseStore:
    """A response store in a temporary directory."""
    s = ResponseStore(tmp_path / "store")
    yield s
    s.close()


@pytest.fixture
def locked_store(tmp_path: Path) -> ResponseStore:
    """A store whose database another connection holds the write lock on."""
    s = ResponseStore(tmp_path / "locked", timeout=0.05)
    holder = sqlite3.connect(str(tmp_path / "locked" / "cache.db"), isolation_level=None)
    holder.execute("BEGIN IMMEDIATE")
    yield s
    holder.execute("ROLLBACK")
    holder.close()
    s.close()


@pytest.fixture
def make_client(api: RecordingAPI, store: ResponseStore) -> Callable[..., CachingClient]:
    """Factory for a CachingClient over the recording API and the tmp store."""

    def _make(**cache_settings: Any) -> CachingClient:
        return CachingClient(api, store, CacheConfig(**cache_settings))

    return _make


@pytest.fixture
def client(make_client: Callable[..., CachingClient]) -> CachingClient:
    """A CachingClient with default cache settings."""
    return make_client()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path, forces the
    XDG layout on every platform, clears WHATCACHE_* environment variables,
    and changes the working directory to tmp_path.
    """
    monkeypatch.setattr("whatcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["WHATCACHE_BASE_URL", "WHATCACHE_CACHE_DIR", "WHATCACHE_USERNAME"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
