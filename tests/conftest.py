"""Shared test fixtures for authsession.

Provides isolated config directories, in-memory storage, fake
authorization processes, and recording listeners. These fixtures are
discovered automatically by pytest.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from authsession.auth.manager import AuthorizationManager, reset_instance
from authsession.auth.process import (
    AuthorizationOutcome,
    AuthorizationProcess,
    CompletionCallback,
    ResponseListener,
)
from authsession.exceptions import AuthorizationFailure
from authsession.models import AuthorizationResult, SessionConfig, StorageConfig
from authsession.output import reset_output
from authsession.storage import MemoryStorage


# ---------------------------------------------------------------------------
# Global state isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals() -> None:
    """Forget the process-wide manager and output manager after every test."""
    yield
    reset_instance()
    reset_output()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear AUTHSESSION_* env vars."""
    monkeypatch.setattr("authsession.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "AUTHSESSION_PERSISTENCE_POLICY",
        "AUTHSESSION_STORAGE_BACKEND",
        "AUTHSESSION_STORAGE_PATH",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def make_result(n: int = 1, **kwargs: Any) -> AuthorizationResult:
    data: dict[str, Any] = {
        "access_token": f"access-{n}",
        "id_token": f"id-{n}",
        "user_identity": {"id": f"user-{n}", "displayName": f"User {n}", "authBy": "realm-a"},
    }
    data.update(kwargs)
    return AuthorizationResult(**data)


class ImmediateProcess(AuthorizationProcess):
    """Completes every attempt synchronously with the next outcome."""

    def __init__(self, outcome_factory: Callable[[int], AuthorizationOutcome]) -> None:
        self._factory = outcome_factory
        self.calls: list[tuple[Any, tuple[Any, ...]]] = []
        self._lock = threading.Lock()

    def start_authorization_process(
        self, host: Any, on_complete: CompletionCallback, *params: Any
    ) -> None:
        with self._lock:
            self.calls.append((host, params))
            n = len(self.calls)
        on_complete(self._factory(n))


class ControlledProcess(AuthorizationProcess):
    """Records attempts; the test decides when and how each one completes."""

    def __init__(self) -> None:
        self.callbacks: list[CompletionCallback] = []
        self.started = threading.Event()
        self._cond = threading.Condition()

    def start_authorization_process(
        self, host: Any, on_complete: CompletionCallback, *params: Any
    ) -> None:
        with self._cond:
            self.callbacks.append(on_complete)
            self._cond.notify_all()
        self.started.set()

    def wait_for_start(self, count: int = 1, timeout: float = 5.0) -> None:
        with self._cond:
            assert self._cond.wait_for(lambda: len(self.callbacks) >= count, timeout)

    def succeed(self, index: int = -1, result: Optional[AuthorizationResult] = None) -> None:
        self.callbacks[index](AuthorizationOutcome.success(result or make_result()))

    def fail(self, index: int = -1, message: str = "denied") -> None:
        self.callbacks[index](AuthorizationOutcome.failure(AuthorizationFailure(message)))


class RecordingListener(ResponseListener):
    """Collects outcomes and signals when one arrives."""

    def __init__(self) -> None:
        self.successes: list[AuthorizationResult] = []
        self.failures: list[AuthorizationFailure] = []
        self.done = threading.Event()

    def on_success(self, result: AuthorizationResult) -> None:
        self.successes.append(result)
        self.done.set()

    def on_failure(self, error: AuthorizationFailure) -> None:
        self.failures.append(error)
        self.done.set()

    def wait(self, timeout: float = 5.0) -> None:
        assert self.done.wait(timeout), "listener was never notified"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def memory_config() -> SessionConfig:
    return SessionConfig(
        app_id="com.example.notes",
        app_version="2.1.0",
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture
def controlled_process() -> ControlledProcess:
    return ControlledProcess()


@pytest.fixture
def manager(
    memory_config: SessionConfig,
    storage: MemoryStorage,
    controlled_process: ControlledProcess,
) -> AuthorizationManager:
    manager = AuthorizationManager(memory_config, storage=storage, process=controlled_process)
    yield manager
    manager.close()


@pytest.fixture
def make_auth_result() -> Callable[..., AuthorizationResult]:
    """Factory for distinct AuthorizationResult values (``make_auth_result(2)``)."""
    return make_result


@pytest.fixture
def recording_listener() -> Callable[[], RecordingListener]:
    """Factory for RecordingListener instances."""
    return RecordingListener


@pytest.fixture
def immediate_process() -> Callable[..., ImmediateProcess]:
    """Factory for ImmediateProcess; defaults to succeeding with make_result(n)."""

    def _factory(
        outcome_factory: Optional[Callable[[int], AuthorizationOutcome]] = None,
    ) -> ImmediateProcess:
        return ImmediateProcess(
            outcome_factory or (lambda n: AuthorizationOutcome.success(make_result(n)))
        )

    return _factory
