"""Tests for challenge handlers, the realm registry, and listener discovery."""

from __future__ import annotations

import threading
from typing import Any, Optional

import pytest

from authsession.auth import discovery
from authsession.auth.challenge import (
    AuthenticationContext,
    AuthenticationListener,
    ChallengeHandler,
    ChallengeHandlerRegistry,
)
from authsession.exceptions import InvalidArgumentError


class EchoListener(AuthenticationListener):
    """Answers every challenge with the challenge itself."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def on_authentication_challenge_received(self, context, challenge, host) -> None:
        self.events.append(("challenge", challenge))
        context.submit_authentication_challenge_answer(challenge)

    def on_authentication_success(self, host, info) -> None:
        self.events.append(("success", info))

    def on_authentication_failure(self, host, info) -> None:
        self.events.append(("failure", info))


class RecordingContext(AuthenticationContext):
    def __init__(self) -> None:
        self.answers: list[Optional[dict[str, Any]]] = []
        self.failures: list[Optional[dict[str, Any]]] = []

    def submit_authentication_challenge_answer(self, answer) -> None:
        self.answers.append(answer)

    def submit_authentication_failure(self, info=None) -> None:
        self.failures.append(info)


class TestChallengeHandler:
    def test_binds_realm_and_listener(self) -> None:
        listener = EchoListener()
        handler = ChallengeHandler("realm-a", listener)
        assert handler.realm == "realm-a"
        assert handler.listener is listener

    def test_handle_challenge_passes_context(self) -> None:
        listener = EchoListener()
        context = RecordingContext()
        ChallengeHandler("realm-a", listener).handle_challenge(context, {"token": "t"}, host="ui")
        assert listener.events == [("challenge", {"token": "t"})]
        assert context.answers == [{"token": "t"}]

    def test_success_and_failure_notifications(self) -> None:
        listener = EchoListener()
        handler = ChallengeHandler("realm-a", listener)
        handler.handle_success({"ok": True})
        handler.handle_failure({"reason": "bad pin"})
        assert listener.events == [("success", {"ok": True}), ("failure", {"reason": "bad pin"})]

    def test_default_notifications_are_noops(self) -> None:
        class MinimalListener(AuthenticationListener):
            def on_authentication_challenge_received(self, context, challenge, host) -> None:
                context.submit_authentication_failure(None)

        handler = ChallengeHandler("realm-a", MinimalListener())
        handler.handle_success(None)
        handler.handle_failure(None)


class TestChallengeHandlerRegistry:
    def test_register_then_lookup(self) -> None:
        registry = ChallengeHandlerRegistry()
        listener = EchoListener()
        registry.register("realm-a", listener)
        handler = registry.lookup("realm-a")
        assert handler is not None
        assert handler.listener is listener
        assert "realm-a" in registry

    def test_unregister_then_lookup_is_absent(self) -> None:
        registry = ChallengeHandlerRegistry()
        registry.register("realm-a", EchoListener())
        registry.unregister("realm-a")
        assert registry.lookup("realm-a") is None
        assert len(registry) == 0

    def test_last_registration_wins(self) -> None:
        registry = ChallengeHandlerRegistry()
        first, second = EchoListener(), EchoListener()
        registry.register("realm-a", first)
        registry.register("realm-a", second)
        assert registry.lookup("realm-a").listener is second
        assert registry.realms() == ["realm-a"]

    @pytest.mark.parametrize("realm", [None, ""])
    def test_register_rejects_empty_realm(self, realm) -> None:
        registry = ChallengeHandlerRegistry()
        with pytest.raises(InvalidArgumentError, match="realm"):
            registry.register(realm, EchoListener())
        assert len(registry) == 0

    def test_register_rejects_null_listener(self) -> None:
        registry = ChallengeHandlerRegistry()
        with pytest.raises(InvalidArgumentError, match="listener"):
            registry.register("realm-a", None)  # type: ignore[arg-type]
        assert registry.lookup("realm-a") is None

    def test_invalid_argument_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            ChallengeHandlerRegistry().register("", EchoListener())

    @pytest.mark.parametrize("realm", [None, "", "unknown"])
    def test_unregister_ignores_empty_and_unknown(self, realm) -> None:
        registry = ChallengeHandlerRegistry()
        registry.register("realm-a", EchoListener())
        registry.unregister(realm)
        assert registry.realms() == ["realm-a"]

    def test_lookup_unknown_or_empty(self) -> None:
        registry = ChallengeHandlerRegistry()
        assert registry.lookup("nope") is None
        assert registry.lookup(None) is None

    def test_concurrent_register_unregister_lookup(self) -> None:
        registry = ChallengeHandlerRegistry()
        listener = EchoListener()
        errors: list[BaseException] = []
        seen: list[Optional[ChallengeHandler]] = []

        def writer(i: int) -> None:
            try:
                for _ in range(200):
                    registry.register(f"realm-{i % 4}", listener)
                    registry.unregister(f"realm-{(i + 1) % 4}")
            except BaseException as exc:  # noqa: BLE001
                errors.append(exc)

        def reader() -> None:
            for _ in range(400):
                handler = registry.lookup("realm-0")
                if handler is not None:
                    seen.append(handler)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert all(h.realm == "realm-0" and h.listener is listener for h in seen)


class _FakeEntryPoint:
    def __init__(self, name: str, target: Any, value: str = "pkg.mod:Listener") -> None:
        self.name = name
        self.value = value
        self._target = target

    def load(self) -> Any:
        if isinstance(self._target, Exception):
            raise self._target
        return self._target


class TestDiscoverListeners:
    def test_registers_entry_points_by_realm(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            discovery,
            "_entry_points",
            lambda: [_FakeEntryPoint("sso", EchoListener), _FakeEntryPoint("pin", EchoListener)],
        )
        registry = ChallengeHandlerRegistry()
        assert discovery.discover_listeners(registry) == ["sso", "pin"]
        assert registry.realms() == ["pin", "sso"]

    def test_enabled_and_disabled_filters(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            discovery,
            "_entry_points",
            lambda: [
                _FakeEntryPoint("sso", EchoListener),
                _FakeEntryPoint("pin", EchoListener),
                _FakeEntryPoint("otp", EchoListener),
            ],
        )
        registry = ChallengeHandlerRegistry()
        loaded = discovery.discover_listeners(registry, enabled=["sso", "pin"], disabled=["pin"])
        assert loaded == ["sso"]

    def test_broken_entry_points_are_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            discovery,
            "_entry_points",
            lambda: [
                _FakeEntryPoint("broken", ImportError("missing module")),
                _FakeEntryPoint("wrong-type", dict),
                _FakeEntryPoint("sso", EchoListener),
            ],
        )
        registry = ChallengeHandlerRegistry()
        assert discovery.discover_listeners(registry) == ["sso"]
