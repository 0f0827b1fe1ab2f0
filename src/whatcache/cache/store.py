"""Persistent response store backed by :mod:`diskcache`.

:class:`ResponseStore` keeps one :class:`~whatcache.models.CachedRecord` per
request fingerprint in a :class:`diskcache.Cache` directory (SQLite under
the hood).  Saving a record under an existing fingerprint replaces it.
Records carry their capture time; :meth:`ResponseStore.lookup` refuses to
return a record at or past the caller's staleness window.

Records are tagged with their operation name so that
:meth:`ResponseStore.invalidate_operation` can evict all records of one
kind.  Nothing is evicted implicitly.

See Also:
    :class:`~whatcache.models.CacheConfig` -- staleness settings.
    :mod:`whatcache.cache.fingerprint` -- how keys are derived.
"""

from __future__ import annotations

import logging
import pickle
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import diskcache

from whatcache.exceptions import StoreError
from whatcache.models import CachedRecord

logger = logging.getLogger(__name__)

# diskcache failures on I/O, SQLite locking, and (un)pickling records.
_BACKEND_ERRORS = (
    OSError,
    sqlite3.Error,
    diskcache.Timeout,
    pickle.PickleError,
    TypeError,
    AttributeError,
    EOFError,
    ImportError,
)


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class ResponseStore:
    """Disk-backed store of API results keyed by request fingerprint.

    Args:
        directory: Directory holding the store's SQLite database.  Created
            if missing.
        timeout: Seconds to wait for the SQLite lock before giving up.

    Raises:
        StoreError: If the directory cannot be created or the database
            cannot be opened.  Reads and writes raise it as well when the
            backend fails.

    Example::

        store = ResponseStore("/tmp/whatcache")
        store.save(CachedRecord(fingerprint=key, operation="get_artist",
                                captured_at=utcnow(), payload={"id": 100}))
        record = store.lookup(key, max_age=3600)
    """

    def __init__(self, directory: str | Path, timeout: float = 60) -> None:
        self._directory = Path(directory)
        try:
            self._cache = diskcache.Cache(
                str(self._directory), timeout=timeout, tag_index=True
            )
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(
                f"Cannot open response store at {self._directory}: {exc}"
            ) from exc

    @property
    def directory(self) -> Path:
        """The store's directory on disk."""
        return self._directory

    def get(self, key: str) -> Optional[CachedRecord]:
        """Return the record stored under *key* regardless of its age, or ``None``.

        Raises:
            StoreError: If the record cannot be read, or what is stored under
                *key* is not a :class:`~whatcache.models.CachedRecord`.
        """
        try:
            record = self._cache.get(key)
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"Cannot read record {key[:12]}: {exc}") from exc
        if record is not None and not isinstance(record, CachedRecord):
            raise StoreError(
                f"Unexpected {type(record).__name__} stored under {key[:12]}"
            )
        return record

    def lookup(
        self,
        key: str,
        max_age: float,
        now: Optional[datetime] = None,
    ) -> Optional[CachedRecord]:
        """Return the record under *key* if it is younger than *max_age* seconds.

        Args:
            key: Request fingerprint.
            max_age: Staleness window in seconds.  ``0`` never matches.
            now: Reference time; defaults to :func:`utcnow`.

        Returns:
            The fresh :class:`~whatcache.models.CachedRecord`, or ``None`` on
            a miss or when the stored record is stale.

        Raises:
            StoreError: If the record cannot be read.
        """
        record = self.get(key)
        if record is None:
            return None
        age = record.age_seconds(now or utcnow())
        if age >= max_age:
            logger.debug(
                "Stale record for %s (%s): %.0fs old, window %ss",
                record.operation, key[:12], age, max_age,
            )
            return None
        return record

    def save(self, record: CachedRecord) -> None:
        """Store *record* under its fingerprint, replacing any previous one.

        Raises:
            StoreError: If the payload cannot be pickled or the write fails.
        """
        try:
            self._cache.set(record.fingerprint, record, tag=record.operation)
        except _BACKEND_ERRORS as exc:
            raise StoreError(
                f"Cannot save {record.operation} record {record.fingerprint[:12]}: {exc}"
            ) from exc

    def invalidate(self, key: str) -> bool:
        """Remove the record under *key*.  Returns ``True`` if one existed."""
        return bool(self._cache.delete(key))

    def invalidate_operation(self, operation: str) -> int:
        """Remove every record produced by *operation*.  Returns the count removed."""
        return self._cache.evict(operation)

    def clear(self) -> int:
        """Remove all records.  Returns the count removed."""
        return self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return store statistics: record count, directory, and size on disk."""
        return {
            "records": len(self._cache),
            "directory": str(self._directory),
            "size_bytes": self._cache.volume(),
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        self._cache.close()

    def __enter__(self) -> ResponseStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
