"""Client-side authorization session core.

The main entry points are:

- :class:`AuthorizationManager` -- caches credentials, runs authorization
  attempts one at a time, and routes realm challenges.
- :func:`create_instance` / :func:`get_instance` -- the optional
  process-wide manager.
- :func:`is_authorization_required` -- decides whether a response is a
  Bearer challenge.
- :class:`AuthenticationListener` -- base class for realm strategies.
- :class:`AuthorizationProcess` / :class:`ResponseListener` -- contracts
  with the external authorization process and with callers.
- :class:`SessionAuth` -- :mod:`httpx` integration.

Typical usage::

    from authsession.auth import AuthorizationManager, SessionAuth

    manager = AuthorizationManager(config, process=MyProcess())
    manager.register_authentication_listener("sso", SSOListener())
    client = httpx.Client(auth=SessionAuth(manager))
"""

from authsession.auth.challenge import (
    AuthenticationContext,
    AuthenticationListener,
    ChallengeHandler,
    ChallengeHandlerRegistry,
)
from authsession.auth.credential_store import CredentialCell, CredentialStore, IdentityCell
from authsession.auth.detector import (
    is_authorization_required,
    is_authorization_required_for_response,
)
from authsession.auth.httpx_auth import SessionAuth
from authsession.auth.manager import (
    AuthorizationManager,
    AuthorizationState,
    create_instance,
    get_instance,
    reset_instance,
)
from authsession.auth.policy import PersistencePolicyController
from authsession.auth.process import AuthorizationOutcome, AuthorizationProcess, ResponseListener

__all__ = [
    "AuthenticationContext",
    "AuthenticationListener",
    "AuthorizationManager",
    "AuthorizationOutcome",
    "AuthorizationProcess",
    "AuthorizationState",
    "ChallengeHandler",
    "ChallengeHandlerRegistry",
    "CredentialCell",
    "CredentialStore",
    "IdentityCell",
    "PersistencePolicyController",
    "ResponseListener",
    "SessionAuth",
    "create_instance",
    "get_instance",
    "is_authorization_required",
    "is_authorization_required_for_response",
    "reset_instance",
]
