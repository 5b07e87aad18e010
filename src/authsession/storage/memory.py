"""In-process storage backend.

Values live only as long as the :class:`MemoryStorage` object. Sharing one
instance between two session managers simulates a process restart in tests.
"""

from __future__ import annotations

import threading
from typing import Optional

from authsession.storage.base import PersistentStorage


class MemoryStorage(PersistentStorage):
    """Thread-safe dict-backed :class:`~authsession.storage.base.PersistentStorage`."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Return the stored keys, sorted."""
        with self._lock:
            return sorted(self._data)
