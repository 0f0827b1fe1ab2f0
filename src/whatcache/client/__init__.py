"""Tracker API clients for whatcache.

Classes:
    :class:`TrackerAPI` -- the capability protocol every client implements.
    :class:`GazelleClient` -- live client backed by :class:`httpx.Client`.

Example::

    from whatcache.client import GazelleClient

    with GazelleClient("https://tracker.example/", "whatcache/0.1") as api:
        api.login("user", "secret")
        top = api.get_top_ten_torrents({"limit": 10})
"""

from whatcache.client.api import TrackerAPI
from whatcache.client.gazelle import GazelleClient

__all__ = ["TrackerAPI", "GazelleClient"]
