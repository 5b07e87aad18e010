"""Policy-aware credential cells for one authorization session.

A *cell* is a named slot holding at most one value. Every cell keeps its
current value in memory and, depending on its durability, mirrors it into a
:class:`~authsession.storage.base.PersistentStorage`:

- **Installation-scoped** cells (client id, identities, the policy itself)
  are always durable.
- **Policy-governed** cells (access token, id token) are durable only while
  the persistence policy is ``ALWAYS``. Each tracks an explicit
  :class:`~authsession.models.CellState` and moves between states through
  :meth:`CredentialCell.update_state_by_policy`.

:class:`CredentialStore` groups the cells of one session and owns the lock
that composite readers and writers hold so that nobody observes a torn
combination of cells.

See Also:
    :class:`~authsession.auth.policy.PersistencePolicyController` -- triggers
    the migrations.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Optional

from authsession.models import AuthorizationResult, CellState, PersistencePolicy
from authsession.storage.base import PersistentStorage

logger = logging.getLogger(__name__)

PolicyGetter = Callable[[], PersistencePolicy]


class CredentialCell:
    """A named string slot with transient or durable backing.

    Args:
        name: Cell name, also used as the storage key.
        storage: Durable backend.
        policy: Callable returning the current persistence policy. ``None``
            makes the cell installation-scoped (always durable).

    Example::

        cell = CredentialCell("access_token", storage, lambda: PersistencePolicy.NEVER)
        cell.set("tok")
        assert cell.state is CellState.TRANSIENT
    """

    def __init__(
        self,
        name: str,
        storage: PersistentStorage,
        policy: Optional[PolicyGetter] = None,
    ) -> None:
        self._name = name
        self._storage = storage
        self._policy = policy
        self._lock = threading.RLock()
        self._raw: Optional[str] = None
        self._state = CellState.TRANSIENT
        self._restore()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> CellState:
        """Where the current value lives (``TRANSIENT`` when the cell is empty)."""
        with self._lock:
            return self._state

    @property
    def is_policy_governed(self) -> bool:
        return self._policy is not None

    def _should_persist(self) -> bool:
        return self._policy is None or self._policy() is PersistencePolicy.ALWAYS

    def _restore(self) -> None:
        if self._should_persist():
            stored = self._storage.get(self._name)
            if stored is not None:
                self._raw = stored
                self._state = CellState.DURABLE
        else:
            # An interrupted ALWAYS -> NEVER migration can leave a durable copy behind.
            self._storage.remove(self._name)

    # ------------------------------------------------------------------ #
    # Value access
    # ------------------------------------------------------------------ #

    def get(self) -> Any:
        """Return the current value, or ``None`` when the cell is empty."""
        with self._lock:
            raw = self._raw
        return None if raw is None else self._decode(raw)

    def set(self, value: Any) -> None:
        """Store *value*. Setting ``None`` is the same as :meth:`clear`.

        The durable copy is written before the in-memory value changes, so a
        storage failure leaves the cell exactly as it was.
        """
        if value is None:
            self.clear()
            return
        raw = self._encode(value)
        with self._lock:
            if self._should_persist():
                self._storage.set(self._name, raw)
                self._state = CellState.DURABLE
            else:
                self._state = CellState.TRANSIENT
            self._raw = raw

    def clear(self) -> None:
        """Remove the value from memory and durable storage."""
        with self._lock:
            self._storage.remove(self._name)
            self._raw = None
            self._state = CellState.TRANSIENT

    def update_state_by_policy(self) -> bool:
        """Move the current value to the backing the policy now requires.

        A no-op when the cell is empty or already in the right state, so it
        is safe to call repeatedly.

        Returns:
            ``True`` if the value changed backing.
        """
        with self._lock:
            if self._raw is None:
                return False
            if self._should_persist():
                if self._state is CellState.DURABLE:
                    return False
                self._storage.set(self._name, self._raw)
                self._state = CellState.DURABLE
            else:
                if self._state is CellState.TRANSIENT:
                    return False
                self._storage.remove(self._name)
                self._state = CellState.TRANSIENT
            logger.debug("Cell '%s' migrated to %s", self._name, self._state.value)
            return True

    migrate = update_state_by_policy

    # ------------------------------------------------------------------ #
    # Serialisation hooks
    # ------------------------------------------------------------------ #

    def _encode(self, value: Any) -> str:
        return str(value)

    def _decode(self, raw: str) -> Any:
        return raw


class IdentityCell(CredentialCell):
    """A cell holding a structured identity as a JSON object.

    Accepts either a mapping or an identity model (anything with
    ``to_map()``). Every read returns a fresh copy.
    """

    def _encode(self, value: Any) -> str:
        if hasattr(value, "to_map"):
            value = value.to_map()
        if not isinstance(value, Mapping):
            raise TypeError(f"Identity cell '{self.name}' expects a mapping")
        return json.dumps(dict(value), sort_keys=True)

    def _decode(self, raw: str) -> Any:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable identity in cell '%s'", self.name)
            return None
        return data if isinstance(data, dict) else None

    def get_as_map(self) -> dict[str, Any]:
        """Return a snapshot of the identity (empty when absent)."""
        return self.get() or {}


class CredentialStore:
    """The cells of one authorization session.

    Args:
        storage: Durable backend shared by all cells.
        default_policy: Policy reported until one has been persisted.

    Attributes:
        lock: Re-entrant lock held by composite reads and writes.
    """

    def __init__(
        self,
        storage: PersistentStorage,
        default_policy: PersistencePolicy = PersistencePolicy.ALWAYS,
    ) -> None:
        self._default_policy = default_policy
        self.lock = threading.RLock()

        self.persistence_policy = CredentialCell("persistence_policy", storage)
        self.client_id = CredentialCell("client_id", storage)
        self.device_identity = IdentityCell("device_identity", storage)
        self.app_identity = IdentityCell("app_identity", storage)
        self.user_identity = IdentityCell("user_identity", storage)
        self.access_token = CredentialCell("access_token", storage, self.current_policy)
        self.id_token = CredentialCell("id_token", storage, self.current_policy)

    @property
    def token_cells(self) -> tuple[CredentialCell, ...]:
        """The cells whose durability follows the persistence policy."""
        return (self.access_token, self.id_token)

    def current_policy(self) -> PersistencePolicy:
        """Return the persisted policy, falling back to the installation default."""
        stored = self.persistence_policy.get()
        if stored is None:
            return self._default_policy
        try:
            return PersistencePolicy(stored)
        except ValueError:
            logger.warning("Unknown stored persistence policy %r, using default", stored)
            return self._default_policy

    def write_authorization(self, result: AuthorizationResult) -> None:
        """Store the tokens and identity of a successful authorization.

        Runs under :attr:`lock`. If any write fails, the cells written so
        far are restored to their previous values before the error
        propagates.
        """
        with self.lock:
            previous = {
                self.access_token: self.access_token.get(),
                self.id_token: self.id_token.get(),
                self.user_identity: self.user_identity.get(),
            }
            if result.client_id:
                previous[self.client_id] = self.client_id.get()
            try:
                self.access_token.set(result.access_token)
                self.id_token.set(result.id_token)
                self.user_identity.set(result.user_identity)
                if result.client_id:
                    self.client_id.set(result.client_id)
            except Exception:
                for cell, value in previous.items():
                    try:
                        cell.set(value)
                    except Exception:
                        logger.exception("Could not restore cell '%s'", cell.name)
                raise

    def clear_authorization(self) -> None:
        """Clear the access token, id token, and user identity."""
        with self.lock:
            self.access_token.clear()
            self.id_token.clear()
            self.user_identity.clear()
