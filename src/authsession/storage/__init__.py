"""Durable storage backends for authsession.

This package provides the :class:`PersistentStorage` contract and three
backends:

- :class:`FileStorage` -- one JSON file written atomically (default).
- :class:`DiskCacheStorage` -- a :mod:`diskcache` directory.
- :class:`MemoryStorage` -- in-process only.

:func:`create_storage` builds the backend selected by a
:class:`~authsession.models.SessionConfig`.
"""

from __future__ import annotations

from pathlib import Path

from authsession.models import SessionConfig
from authsession.storage.base import PersistentStorage
from authsession.storage.disk_cache import DiskCacheStorage
from authsession.storage.file_store import FileStorage
from authsession.storage.memory import MemoryStorage


def create_storage(config: SessionConfig) -> PersistentStorage:
    """Instantiate the storage backend named by ``config.storage.backend``.

    Relative default paths live under :func:`~authsession.config.get_data_dir`:
    ``session.json`` for the file backend and ``session-cache/`` for
    diskcache.
    """
    from authsession.config import get_data_dir

    backend = config.storage.backend
    if backend == "memory":
        return MemoryStorage()
    if config.storage.path:
        path = Path(config.storage.path).expanduser()
    elif backend == "diskcache":
        path = get_data_dir() / "session-cache"
    else:
        path = get_data_dir() / "session.json"
    if backend == "diskcache":
        return DiskCacheStorage(path)
    return FileStorage(path)


__all__ = [
    "DiskCacheStorage",
    "FileStorage",
    "MemoryStorage",
    "PersistentStorage",
    "create_storage",
]
