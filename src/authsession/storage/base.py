"""Abstract base class for durable session storage.

:class:`PersistentStorage` is the contract between the credential store and
wherever durable values actually live. Values are strings; structured
values (identities) are serialised to JSON by the caller.

Implementations must be safe to call from multiple threads.

See Also:
    :mod:`authsession.storage.file_store`, :mod:`authsession.storage.disk_cache`,
    :mod:`authsession.storage.memory` for the built-in backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class PersistentStorage(ABC):
    """Durable key/value store used for ALWAYS-policy and installation-scoped cells."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value for *key*, or ``None`` when absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value.

        Raises:
            StorageError: If the value cannot be made durable.
        """
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*. A no-op when the key is not present."""
        ...

    def close(self) -> None:
        """Release any resources held by the backend."""
