"""JSON file storage backend.

Stores every durable session value in a single JSON object, by default
``~/.local/share/authsession/session.json`` (XDG) or the platform
equivalent. Files are written atomically via a temporary file and
``os.replace`` with ``0o600`` permissions so that tokens are never
world-readable, even momentarily.

Nothing is cached: every read loads the file, and every mutation is a
read-modify-write against the current file contents. A host process and
the ``authsession`` CLI can therefore hold the same session file open
without one silently undoing the other's writes.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from authsession.config import _atomic_write
from authsession.exceptions import StorageError
from authsession.storage.base import PersistentStorage

logger = logging.getLogger(__name__)


class FileStorage(PersistentStorage):
    """Persist session values to a single JSON file.

    A missing file is an empty store. A corrupted file is logged and
    treated as empty; it is replaced on the next write.

    Args:
        path: Location of the JSON file. Parent directories are created on
            first write.

    Example::

        storage = FileStorage(Path("/tmp/session.json"))
        storage.set("client_id", "abc")
        assert FileStorage(Path("/tmp/session.json")).get("client_id") == "abc"
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """The filesystem path of the backing JSON file."""
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._flush(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key not in data:
                return
            del data[key]
            self._flush(data)

    def _load(self) -> dict[str, str]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring session file %s: expected a JSON object", self._path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self, data: dict[str, str]) -> None:
        text = json.dumps(data, indent=2, sort_keys=True) + "\n"
        try:
            _atomic_write(self._path, text, mode=0o600)
        except OSError as exc:
            raise StorageError(f"Cannot write session file {self._path}: {exc}") from exc
