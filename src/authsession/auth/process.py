"""Contracts between the session manager and the external authorization process.

The manager never talks to the backend auth service itself. It hands each
attempt to an :class:`AuthorizationProcess`, which runs whatever exchange
the backend requires (registration, token requests, realm challenges) and
reports back exactly once through the ``on_complete`` callback with an
:class:`AuthorizationOutcome`.

Callers of
:meth:`~authsession.auth.manager.AuthorizationManager.obtain_authorization`
receive the result through a :class:`ResponseListener`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from authsession.exceptions import AuthorizationFailure
from authsession.models import AuthorizationResult

if TYPE_CHECKING:
    from authsession.auth.challenge import ChallengeHandlerRegistry


@dataclass(frozen=True)
class AuthorizationOutcome:
    """The single report an authorization process delivers.

    Exactly one of :attr:`result` and :attr:`error` is set.
    """

    result: Optional[AuthorizationResult] = None
    error: Optional[AuthorizationFailure] = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("An outcome carries either a result or an error")

    @property
    def succeeded(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, result: AuthorizationResult) -> AuthorizationOutcome:
        return cls(result=result)

    @classmethod
    def failure(
        cls, error: AuthorizationFailure | BaseException | str
    ) -> AuthorizationOutcome:
        """Build a failed outcome, wrapping foreign errors in :class:`AuthorizationFailure`."""
        if isinstance(error, AuthorizationFailure):
            return cls(error=error)
        if isinstance(error, BaseException):
            return cls(error=AuthorizationFailure(str(error) or type(error).__name__, cause=error))
        return cls(error=AuthorizationFailure(error))


CompletionCallback = Callable[[AuthorizationOutcome], None]


class AuthorizationProcess(ABC):
    """The external process that actually obtains authorization.

    Implementations must invoke *on_complete* exactly once per call to
    :meth:`start_authorization_process`, from any thread. The manager
    ignores extra invocations, but an implementation that never calls back
    keeps the manager busy until ``authorization_timeout`` elapses.

    Attributes:
        challenge_handlers: Registry of realm handlers, attached by the
            session manager so the process can dispatch realm challenges.
    """

    challenge_handlers: Optional[ChallengeHandlerRegistry] = None

    def attach(self, registry: ChallengeHandlerRegistry) -> None:
        """Give the process access to the manager's challenge handler registry."""
        self.challenge_handlers = registry

    @abstractmethod
    def start_authorization_process(
        self, host: Any, on_complete: CompletionCallback, *params: Any
    ) -> None:
        """Begin one authorization attempt.

        Args:
            host: Opaque handle of the host that can show interactive UI.
            on_complete: Callback receiving the attempt's outcome.
            *params: Extra arguments forwarded from ``obtain_authorization``.
        """
        ...


class ResponseListener(ABC):
    """Receives the outcome of an ``obtain_authorization`` call."""

    @abstractmethod
    def on_success(self, result: AuthorizationResult) -> None:
        """Called after the new tokens have been stored."""
        ...

    @abstractmethod
    def on_failure(self, error: AuthorizationFailure) -> None:
        """Called when the attempt failed; cached credentials are unchanged."""
        ...
