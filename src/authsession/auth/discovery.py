"""Entry-point discovery of authentication listeners.

Third-party packages can ship an authentication strategy for a realm by
declaring an entry point in the ``authsession.authentication_listeners``
group. The entry-point *name* is the realm; the object it points to is an
:class:`~authsession.auth.challenge.AuthenticationListener` subclass (or any
zero-argument factory returning one)::

    [project.entry-points."authsession.authentication_listeners"]
    corporate-sso = "my_package.sso:SSOListener"
"""

from __future__ import annotations

import importlib.metadata
import logging
from collections.abc import Iterable
from typing import Optional

from authsession.auth.challenge import AuthenticationListener, ChallengeHandlerRegistry

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "authsession.authentication_listeners"
"""The entry-point group name used for listener discovery."""


def _entry_points() -> Iterable[importlib.metadata.EntryPoint]:
    return importlib.metadata.entry_points(group=ENTRY_POINT_GROUP)


def discover_listeners(
    registry: ChallengeHandlerRegistry,
    enabled: Optional[Iterable[str]] = None,
    disabled: Optional[Iterable[str]] = None,
) -> list[str]:
    """Register every installed authentication listener with *registry*.

    Args:
        registry: Registry to populate.
        enabled: When given and non-empty, only these realms are loaded.
        disabled: Realms that are never loaded.

    Returns:
        The realms that were registered. Listeners that fail to load are
        logged as warnings and skipped.
    """
    enabled_set = set(enabled or ())
    disabled_set = set(disabled or ())
    registered: list[str] = []

    for ep in _entry_points():
        realm = ep.name
        if enabled_set and realm not in enabled_set:
            logger.debug("Realm '%s' not in enabled list, skipping", realm)
            continue
        if realm in disabled_set:
            logger.debug("Realm '%s' is disabled, skipping", realm)
            continue

        try:
            factory = ep.load()
            listener = factory()
            if not isinstance(listener, AuthenticationListener):
                raise TypeError(
                    f"{ep.value} did not produce an AuthenticationListener"
                )
            registry.register(realm, listener)
            registered.append(realm)
        except Exception as exc:
            logger.warning("Failed to load authentication listener '%s': %s", realm, exc)

    return registered
