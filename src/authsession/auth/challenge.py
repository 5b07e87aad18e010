"""Realm-keyed challenge handlers.

An authentication *realm* names an external authentication strategy (an
identity provider, an interactive login screen, a device-code flow). The
application registers one :class:`AuthenticationListener` per realm; the
authorization process looks the realm up in the
:class:`ChallengeHandlerRegistry` when the backend issues a challenge and
hands control to the matching :class:`ChallengeHandler`.

Listeners answer challenges asynchronously through the
:class:`AuthenticationContext` they are given.

Example::

    class PinListener(AuthenticationListener):
        def on_authentication_challenge_received(self, context, challenge, host):
            context.submit_authentication_challenge_answer({"pin": ask_for_pin()})

    registry = ChallengeHandlerRegistry()
    registry.register("pin-realm", PinListener())
    handler = registry.lookup("pin-realm")
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from authsession.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


class AuthenticationContext(ABC):
    """Channel a listener uses to answer a challenge.

    Provided by the authorization process for each challenge it dispatches.
    """

    @abstractmethod
    def submit_authentication_challenge_answer(self, answer: Optional[dict[str, Any]]) -> None:
        """Send the listener's answer back to the authorization process."""
        ...

    @abstractmethod
    def submit_authentication_failure(self, info: Optional[dict[str, Any]] = None) -> None:
        """Report that the listener could not answer the challenge."""
        ...


class AuthenticationListener(ABC):
    """An external authentication strategy for one realm.

    Only :meth:`on_authentication_challenge_received` is required; the
    success and failure notifications default to no-ops.
    """

    @abstractmethod
    def on_authentication_challenge_received(
        self,
        context: AuthenticationContext,
        challenge: Optional[dict[str, Any]],
        host: Any,
    ) -> None:
        """Handle a challenge and eventually answer it through *context*."""
        ...

    def on_authentication_success(self, host: Any, info: Optional[dict[str, Any]]) -> None:
        """Called when the backend accepted the realm's answer."""

    def on_authentication_failure(self, host: Any, info: Optional[dict[str, Any]]) -> None:
        """Called when the backend rejected the realm's answer."""


class ChallengeHandler:
    """Binds a realm to its :class:`AuthenticationListener`.

    Instances are immutable once constructed; the registry only ever
    publishes fully constructed handlers.

    Args:
        realm: Non-empty realm name.
        listener: The strategy that answers challenges for *realm*.
    """

    __slots__ = ("_realm", "_listener")

    def __init__(self, realm: str, listener: AuthenticationListener) -> None:
        _validate_realm(realm)
        if listener is None:
            raise InvalidArgumentError("The authentication listener object can't be null.")
        self._realm = realm
        self._listener = listener

    @property
    def realm(self) -> str:
        return self._realm

    @property
    def listener(self) -> AuthenticationListener:
        return self._listener

    def handle_challenge(
        self,
        context: AuthenticationContext,
        challenge: Optional[dict[str, Any]],
        host: Any = None,
    ) -> None:
        """Pass a challenge for this realm to the listener."""
        logger.debug("Dispatching challenge for realm '%s'", self._realm)
        self._listener.on_authentication_challenge_received(context, challenge, host)

    def handle_success(self, success: Optional[dict[str, Any]], host: Any = None) -> None:
        self._listener.on_authentication_success(host, success)

    def handle_failure(self, failure: Optional[dict[str, Any]], host: Any = None) -> None:
        self._listener.on_authentication_failure(host, failure)

    def __repr__(self) -> str:
        return f"ChallengeHandler(realm={self._realm!r}, listener={self._listener!r})"


def _validate_realm(realm: Optional[str]) -> None:
    if not realm or not isinstance(realm, str):
        raise InvalidArgumentError("The realm name can't be null or empty.")


class ChallengeHandlerRegistry:
    """Thread-safe mapping from realm to :class:`ChallengeHandler`.

    Registration replaces any handler already bound to the realm. Lookups
    racing an unregister see either the old handler or ``None``.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, ChallengeHandler] = {}
        self._lock = threading.Lock()

    def register(self, realm: str, listener: AuthenticationListener) -> ChallengeHandler:
        """Bind *listener* to *realm*.

        Returns:
            The newly created handler.

        Raises:
            InvalidArgumentError: If *realm* is empty or *listener* is ``None``.
        """
        handler = ChallengeHandler(realm, listener)
        with self._lock:
            replaced = realm in self._handlers
            self._handlers[realm] = handler
        if replaced:
            logger.debug("Replaced authentication listener for realm '%s'", realm)
        else:
            logger.debug("Registered authentication listener for realm '%s'", realm)
        return handler

    def unregister(self, realm: Optional[str]) -> None:
        """Remove the handler for *realm*. Empty or unknown realms are ignored."""
        if not realm:
            return
        with self._lock:
            removed = self._handlers.pop(realm, None)
        if removed is not None:
            logger.debug("Unregistered authentication listener for realm '%s'", realm)

    def lookup(self, realm: Optional[str]) -> Optional[ChallengeHandler]:
        """Return the handler for *realm*, or ``None``."""
        if not realm:
            return None
        with self._lock:
            return self._handlers.get(realm)

    def realms(self) -> list[str]:
        """Return the registered realm names, sorted."""
        with self._lock:
            return sorted(self._handlers)

    def __contains__(self, realm: object) -> bool:
        with self._lock:
            return realm in self._handlers

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)
