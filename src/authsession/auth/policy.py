"""Persistence policy controller.

Reads and changes the :class:`~authsession.models.PersistencePolicy` of a
:class:`~authsession.auth.credential_store.CredentialStore`. A change is
applied in two steps, in this order:

1. the new policy is written to durable storage;
2. every token cell is migrated to the backing the new policy requires.

If the process dies between the steps, the next start reads the new policy
and the cells settle on it when they are restored, because migration is
idempotent.
"""

from __future__ import annotations

import logging
from typing import Optional

from authsession.auth.credential_store import CredentialStore
from authsession.exceptions import InvalidArgumentError
from authsession.models import PersistencePolicy

logger = logging.getLogger(__name__)


def coerce_policy(policy: Optional[PersistencePolicy | str]) -> PersistencePolicy:
    """Validate *policy*, accepting the enum or its name in any case.

    Raises:
        InvalidArgumentError: If *policy* is ``None`` or not a known policy.
    """
    if policy is None:
        raise InvalidArgumentError("The policy argument cannot be null")
    if isinstance(policy, PersistencePolicy):
        return policy
    try:
        return PersistencePolicy(str(policy).strip().upper())
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown persistence policy '{policy}'; expected ALWAYS or NEVER"
        ) from None


class PersistencePolicyController:
    """Get and set the persistence policy of a credential store.

    Args:
        store: The store whose token cells follow the policy.
    """

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def get_policy(self) -> PersistencePolicy:
        """Return the current policy (the installation default until one is set)."""
        return self._store.current_policy()

    def set_policy(self, policy: Optional[PersistencePolicy | str]) -> bool:
        """Change the policy and migrate the token cells.

        Holds the store lock for the whole change, so token reads and writes
        never interleave with a migration.

        Args:
            policy: The new policy.

        Returns:
            ``True`` if the policy changed, ``False`` if it was already set.

        Raises:
            InvalidArgumentError: If *policy* is ``None`` or unknown.
        """
        new_policy = coerce_policy(policy)
        store = self._store
        with store.lock:
            if store.current_policy() is new_policy:
                return False
            store.persistence_policy.set(new_policy.value)
            migrated = [cell.name for cell in store.token_cells if cell.update_state_by_policy()]
        logger.info(
            "Persistence policy set to %s (migrated: %s)",
            new_policy.value,
            ", ".join(migrated) or "none",
        )
        return True
