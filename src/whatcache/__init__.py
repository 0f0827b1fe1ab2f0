"""whatcache -- a caching client for the Gazelle (What.CD-style) JSON API.

This package wraps a tracker API client in a facade that keeps a local,
SQLite-backed store of API responses.  Every data-retrieval operation is
looked up by its request fingerprint first; only misses and stale records
reach the tracker.  Login and logout always go straight through.

Typical use::

    from whatcache.facade import open_client
    from whatcache.models import GlobalConfig

    with open_client(GlobalConfig(base_url="https://tracker.example/")) as api:
        api.login("user", "secret")
        artist = api.get_artist(100, {})

Modules:
    facade: :class:`~whatcache.facade.CachingClient` and ``open_client``.
    client: the ``TrackerAPI`` capability protocol and the live httpx client.
    cache: request fingerprints and the diskcache-backed response store.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration, precedence, and credential sources.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
