"""Authorization session manager -- the public entry point of authsession.

:class:`AuthorizationManager` owns the credential store, the persistence
policy controller, and the challenge handler registry of one session, and
runs authorization attempts through an external
:class:`~authsession.auth.process.AuthorizationProcess`.

Each attempt moves through ``IDLE -> IN_PROGRESS -> SUCCEEDED | FAILED``.
Attempts run one at a time on a dedicated worker thread, so callers of
:meth:`~AuthorizationManager.obtain_authorization` never block and the
credential store never sees interleaved writes. A caller arriving while an
attempt is in flight waits behind it; with ``share_inflight_outcome``
enabled (the default) it receives that attempt's outcome instead of
starting another one.

Hosts that want a process-wide manager use :func:`create_instance` once at
startup and :func:`get_instance` afterwards. Everything else can construct
and pass an :class:`AuthorizationManager` directly.

See Also:
    :mod:`authsession.auth.detector` -- deciding when to call
    :meth:`~AuthorizationManager.obtain_authorization`.
    :class:`~authsession.auth.httpx_auth.SessionAuth` -- wiring all of this
    into :mod:`httpx`.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from authsession.auth import detector
from authsession.auth.challenge import (
    AuthenticationListener,
    ChallengeHandler,
    ChallengeHandlerRegistry,
)
from authsession.auth.credential_store import CredentialStore
from authsession.auth.policy import PersistencePolicyController
from authsession.auth.process import (
    AuthorizationOutcome,
    AuthorizationProcess,
    ResponseListener,
)
from authsession.exceptions import (
    AuthorizationFailure,
    IllegalStateError,
    InvalidArgumentError,
)
from authsession.models import (
    AppIdentity,
    AuthorizationResult,
    DeviceIdentity,
    PersistencePolicy,
    SessionConfig,
    UserIdentity,
)
from authsession.storage import PersistentStorage, create_storage

logger = logging.getLogger(__name__)


class AuthorizationState(str, enum.Enum):
    """Lifecycle of an authorization attempt."""

    IDLE = "IDLE"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class _Attempt:
    """One run of the authorization process and the listeners waiting on it."""

    def __init__(self, host: Any, params: tuple[Any, ...], listener: ResponseListener) -> None:
        self.host = host
        self.params = params
        self.listeners: list[ResponseListener] = [listener]
        self.state = AuthorizationState.IDLE
        self.outcome: Optional[AuthorizationOutcome] = None
        self.future: Optional[Future] = None
        self._lock = threading.Lock()
        self._done = threading.Event()

    def complete(self, outcome: AuthorizationOutcome) -> None:
        """Completion callback handed to the process; only the first call counts."""
        with self._lock:
            if self.outcome is not None:
                logger.warning("Ignoring repeated completion of an authorization attempt")
                return
            self.outcome = outcome
        self._done.set()

    def wait(self, timeout: Optional[float]) -> bool:
        return self._done.wait(timeout)


class _BlockingListener(ResponseListener):
    """Turns the asynchronous listener protocol into a blocking wait."""

    def __init__(self) -> None:
        self.result: Optional[AuthorizationResult] = None
        self.error: Optional[AuthorizationFailure] = None
        self.done = threading.Event()

    def on_success(self, result: AuthorizationResult) -> None:
        self.result = result
        self.done.set()

    def on_failure(self, error: AuthorizationFailure) -> None:
        self.error = error
        self.done.set()


class AuthorizationManager:
    """Caches credentials and serialises authorization attempts for one session.

    On construction the device and application identities are created and
    persisted if this installation has none yet.

    Args:
        config: Session configuration. Defaults to :class:`SessionConfig()`.
        storage: Durable backend. Defaults to the backend named by
            ``config.storage``.
        process: The external authorization process. Optional for hosts
            that only read or clear cached data; :meth:`obtain_authorization`
            requires it.

    Example::

        manager = AuthorizationManager(config, process=MyProcess())
        if manager.is_authorization_required(response):
            manager.obtain_authorization(activity, MyListener())
        manager.add_cached_authorization_header(request)
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        storage: Optional[PersistentStorage] = None,
        process: Optional[AuthorizationProcess] = None,
    ) -> None:
        self._config = config or SessionConfig()
        self._storage = storage if storage is not None else create_storage(self._config)
        self._store = CredentialStore(self._storage, self._config.default_persistence_policy)
        self._policy = PersistencePolicyController(self._store)
        self._registry = ChallengeHandlerRegistry()
        self._process = process
        if process is not None:
            process.attach(self._registry)

        self._state_lock = threading.Lock()
        self._inflight: Optional[_Attempt] = None
        self._outstanding: list[_Attempt] = []
        self._last_attempt_state = AuthorizationState.IDLE
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="authsession-authorization"
        )

        self._init_installation_data()

    def _init_installation_data(self) -> None:
        store = self._store
        with store.lock:
            if store.device_identity.get() is None:
                store.device_identity.set(DeviceIdentity.create())
                logger.info("Created device identity for this installation")
            if store.app_identity.get() is None:
                store.app_identity.set(
                    AppIdentity.create(self._config.app_id, self._config.app_version)
                )

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def credential_store(self) -> CredentialStore:
        return self._store

    @property
    def challenge_handlers(self) -> ChallengeHandlerRegistry:
        return self._registry

    @property
    def authorization_state(self) -> AuthorizationState:
        """``IN_PROGRESS`` while any attempt is running or queued, else ``IDLE``."""
        with self._state_lock:
            return AuthorizationState.IN_PROGRESS if self._outstanding else AuthorizationState.IDLE

    @property
    def last_attempt_state(self) -> AuthorizationState:
        """Final state of the most recently finished attempt (``IDLE`` before any).

        Updated before the attempt's listeners are notified.
        """
        with self._state_lock:
            return self._last_attempt_state

    # ------------------------------------------------------------------ #
    # Obtaining authorization
    # ------------------------------------------------------------------ #

    def obtain_authorization(
        self, host: Any, listener: ResponseListener, *params: Any
    ) -> None:
        """Start (or join) an authorization attempt and return immediately.

        The outcome is delivered to *listener* from the worker thread. On
        success the new tokens are already stored when
        :meth:`ResponseListener.on_success` runs; on failure the cached
        credentials are untouched.

        Args:
            host: Opaque handle passed to the authorization process (for
                example the UI that can display a login screen).
            listener: Receives the outcome.
            *params: Forwarded to the process.

        Raises:
            InvalidArgumentError: If *listener* is ``None``.
            IllegalStateError: If no process is configured or the manager
                has been closed.
        """
        if listener is None:
            raise InvalidArgumentError("The response listener can't be null.")
        if self._process is None:
            raise IllegalStateError("No authorization process is configured")

        with self._state_lock:
            if self._closed:
                raise IllegalStateError("The authorization manager has been closed")
            inflight = self._inflight
            if inflight is not None and self._config.share_inflight_outcome:
                inflight.listeners.append(listener)
                logger.debug("Joined in-flight authorization attempt")
                return
            attempt = _Attempt(host, params, listener)
            self._outstanding.append(attempt)
            self._inflight = attempt
            attempt.future = self._executor.submit(self._run, attempt)
            queued = len(self._outstanding) - 1
        if queued:
            logger.debug("Authorization attempt queued behind %d other(s)", queued)

    def wait_for_authorization(
        self, host: Any = None, *params: Any, timeout: Optional[float] = None
    ) -> AuthorizationResult:
        """Obtain authorization and block until the outcome is known.

        Must not be called from inside an authorization process callback.

        Raises:
            AuthorizationFailure: If the attempt failed or *timeout* elapsed.
        """
        listener = _BlockingListener()
        self.obtain_authorization(host, listener, *params)
        if not listener.done.wait(timeout):
            raise AuthorizationFailure(f"No authorization outcome within {timeout} seconds")
        if listener.error is not None:
            raise listener.error
        assert listener.result is not None
        return listener.result

    def _run(self, attempt: _Attempt) -> None:
        attempt.state = AuthorizationState.IN_PROGRESS
        timeout = self._config.authorization_timeout
        try:
            assert self._process is not None
            logger.debug("Starting authorization process")
            self._process.start_authorization_process(attempt.host, attempt.complete, *attempt.params)
        except Exception as exc:
            logger.exception("Authorization process failed to start")
            attempt.complete(AuthorizationOutcome.failure(exc))
        try:
            if not attempt.wait(timeout):
                attempt.complete(
                    AuthorizationOutcome.failure(
                        AuthorizationFailure(
                            f"Authorization process did not complete within {timeout} seconds"
                        )
                    )
                )
        finally:
            self._finish(attempt)

    def _finish(self, attempt: _Attempt) -> None:
        outcome = attempt.outcome
        if outcome is None:
            outcome = AuthorizationOutcome.failure("Authorization attempt was abandoned")
        if outcome.succeeded:
            assert outcome.result is not None
            try:
                self._store.write_authorization(outcome.result)
            except Exception as exc:
                logger.exception("Could not store the authorization result")
                outcome = AuthorizationOutcome.failure(exc)

        attempt.state = (
            AuthorizationState.SUCCEEDED if outcome.succeeded else AuthorizationState.FAILED
        )
        with self._state_lock:
            if self._inflight is attempt:
                self._inflight = None
            if attempt in self._outstanding:
                self._outstanding.remove(attempt)
            listeners = list(attempt.listeners)
            self._last_attempt_state = attempt.state

        if outcome.succeeded:
            logger.info("Authorization succeeded")
        else:
            logger.warning("Authorization failed: %s", outcome.error)
        for listener in listeners:
            try:
                if outcome.succeeded:
                    assert outcome.result is not None
                    listener.on_success(outcome.result)
                else:
                    assert outcome.error is not None
                    listener.on_failure(outcome.error)
            except Exception:
                logger.exception("Response listener %r raised", listener)

    # ------------------------------------------------------------------ #
    # Detection and headers
    # ------------------------------------------------------------------ #

    def is_authorization_required(self, status_or_response: Any, headers: Any = None) -> bool:
        """Check whether a response demands a Bearer challenge.

        Accepts either ``(status_code, headers)`` or a single response
        object (:class:`httpx.Response`, :class:`http.client.HTTPResponse`).

        Raises:
            IOFailureError: If a response object's status cannot be read.
        """
        if isinstance(status_or_response, int):
            return detector.is_authorization_required(status_or_response, headers)
        return detector.is_authorization_required_for_response(status_or_response)

    def get_cached_authorization_header(self) -> Optional[str]:
        """Return ``Bearer <access_token> <id_token>``, or ``None`` if either is missing."""
        with self._store.lock:
            access_token = self._store.access_token.get()
            id_token = self._store.id_token.get()
        return detector.format_authorization_header(access_token, id_token)

    def add_cached_authorization_header(self, target: Any) -> None:
        """Attach the cached header to *target*; a no-op when there is none."""
        detector.add_authorization_header(target, self.get_cached_authorization_header())

    def clear_authorization_data(self) -> None:
        """Forget the access token, id token, and user identity."""
        self._store.clear_authorization()
        logger.info("Cleared authorization data")

    # ------------------------------------------------------------------ #
    # Persistence policy
    # ------------------------------------------------------------------ #

    def get_authorization_persistence_policy(self) -> PersistencePolicy:
        return self._policy.get_policy()

    def set_authorization_persistence_policy(self, policy: PersistencePolicy | str) -> bool:
        """Change the persistence policy; see :meth:`PersistencePolicyController.set_policy`."""
        return self._policy.set_policy(policy)

    # ------------------------------------------------------------------ #
    # Snapshots
    # ------------------------------------------------------------------ #

    def get_client_id(self) -> Optional[str]:
        """Return the registered client id, or ``None`` before registration."""
        return self._store.client_id.get()

    def get_user_identity(self) -> UserIdentity:
        with self._store.lock:
            return UserIdentity.from_map(self._store.user_identity.get_as_map())

    def get_device_identity(self) -> DeviceIdentity:
        with self._store.lock:
            return DeviceIdentity.from_map(self._store.device_identity.get_as_map())

    def get_app_identity(self) -> AppIdentity:
        with self._store.lock:
            return AppIdentity.from_map(self._store.app_identity.get_as_map())

    # ------------------------------------------------------------------ #
    # Challenge handlers
    # ------------------------------------------------------------------ #

    def register_authentication_listener(
        self, realm: str, listener: AuthenticationListener
    ) -> ChallengeHandler:
        """Bind *listener* to *realm*, replacing any previous binding.

        Raises:
            InvalidArgumentError: If *realm* is empty or *listener* is ``None``.
        """
        return self._registry.register(realm, listener)

    def unregister_authentication_listener(self, realm: Optional[str]) -> None:
        self._registry.unregister(realm)

    def get_challenge_handler(self, realm: Optional[str]) -> Optional[ChallengeHandler]:
        return self._registry.lookup(realm)

    def discover_authentication_listeners(self) -> list[str]:
        """Register listeners published through entry points; returns their realms."""
        from authsession.auth.discovery import discover_listeners

        return discover_listeners(self._registry)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Stop accepting attempts, fail outstanding ones, and close storage.

        A running attempt is completed with a failure; a late callback from
        its process is ignored.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            pending = list(self._outstanding)
        self._executor.shutdown(wait=False, cancel_futures=True)
        closed = AuthorizationOutcome.failure("The authorization manager was closed")
        for attempt in pending:
            attempt.complete(closed)
            if attempt.future is not None and attempt.future.cancelled():
                self._finish(attempt)
        self._storage.close()

    def __enter__(self) -> AuthorizationManager:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


# ---------------------------------------------------------------------- #
# Process-wide instance
# ---------------------------------------------------------------------- #

_instance: Optional[AuthorizationManager] = None
_instance_lock = threading.Lock()


def create_instance(
    config: Optional[SessionConfig] = None,
    storage: Optional[PersistentStorage] = None,
    process: Optional[AuthorizationProcess] = None,
) -> AuthorizationManager:
    """Create the process-wide manager, or return it if it already exists.

    Arguments are ignored once the instance exists.
    """
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = AuthorizationManager(config, storage, process)
        else:
            logger.debug("create_instance called again; returning existing manager")
        return _instance


def get_instance() -> AuthorizationManager:
    """Return the process-wide manager.

    Raises:
        IllegalStateError: If :func:`create_instance` has not been called.
    """
    instance = _instance
    if instance is None:
        raise IllegalStateError("get_instance can't be called before create_instance")
    return instance


def reset_instance() -> None:
    """Close and forget the process-wide manager (host shutdown, tests)."""
    global _instance
    with _instance_lock:
        instance, _instance = _instance, None
    if instance is not None:
        instance.close()
