"""Local response caching for whatcache.

This package provides :func:`fingerprint`, which derives a stable key for
one logical API request, and :class:`ResponseStore`, a :mod:`diskcache`
(SQLite) store of :class:`~whatcache.models.CachedRecord` objects keyed by
that fingerprint.

The store is consumed by :class:`~whatcache.facade.CachingClient` and is
configured by the ``cache`` section of the global config
(:class:`~whatcache.models.CacheConfig`).
"""

from whatcache.cache.fingerprint import fingerprint, normalize_params
from whatcache.cache.store import ResponseStore, utcnow

__all__ = ["ResponseStore", "fingerprint", "normalize_params", "utcnow"]
