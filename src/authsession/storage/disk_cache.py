"""Disk-cache storage backend.

Uses :mod:`diskcache` to keep durable session values in a SQLite-backed
directory. Useful when several processes on the same machine share a
session, since :class:`diskcache.Cache` is process-safe.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import diskcache

from authsession.exceptions import StorageError
from authsession.storage.base import PersistentStorage


class DiskCacheStorage(PersistentStorage):
    """:class:`~authsession.storage.base.PersistentStorage` backed by :class:`diskcache.Cache`.

    Args:
        directory: Cache directory. Created if it does not exist.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._cache = diskcache.Cache(str(self._directory))

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    def set(self, key: str, value: str) -> None:
        try:
            self._cache.set(key, value)
        except diskcache.Timeout as exc:
            raise StorageError(f"Timed out writing '{key}' to {self._directory}") from exc

    def remove(self, key: str) -> None:
        self._cache.delete(key)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        self._cache.close()
