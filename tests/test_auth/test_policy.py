"""Tests for the persistence policy controller."""

from __future__ import annotations

import pytest

from authsession.auth.credential_store import CredentialStore
from authsession.auth.policy import PersistencePolicyController, coerce_policy
from authsession.exceptions import InvalidArgumentError
from authsession.models import CellState, PersistencePolicy
from authsession.storage import MemoryStorage


@pytest.fixture
def store(storage: MemoryStorage) -> CredentialStore:
    return CredentialStore(storage, PersistencePolicy.ALWAYS)


@pytest.fixture
def controller(store: CredentialStore) -> PersistencePolicyController:
    return PersistencePolicyController(store)


class TestCoercePolicy:
    def test_enum_passes_through(self) -> None:
        assert coerce_policy(PersistencePolicy.NEVER) is PersistencePolicy.NEVER

    @pytest.mark.parametrize("value", ["never", "NEVER", " Never "])
    def test_names_are_case_insensitive(self, value: str) -> None:
        assert coerce_policy(value) is PersistencePolicy.NEVER

    def test_none_is_invalid(self) -> None:
        with pytest.raises(InvalidArgumentError, match="cannot be null"):
            coerce_policy(None)

    def test_unknown_is_invalid(self) -> None:
        with pytest.raises(InvalidArgumentError):
            coerce_policy("sometimes")


class TestPersistencePolicyController:
    def test_default_policy(self, controller: PersistencePolicyController) -> None:
        assert controller.get_policy() is PersistencePolicy.ALWAYS

    def test_set_none_mutates_nothing(
        self, controller: PersistencePolicyController, storage: MemoryStorage
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            controller.set_policy(None)
        assert storage.get("persistence_policy") is None

    def test_same_policy_is_noop(
        self, controller: PersistencePolicyController, storage: MemoryStorage
    ) -> None:
        assert controller.set_policy(PersistencePolicy.ALWAYS) is False
        assert storage.get("persistence_policy") is None

    def test_change_persists_policy_and_migrates_tokens(
        self,
        controller: PersistencePolicyController,
        store: CredentialStore,
        storage: MemoryStorage,
    ) -> None:
        store.access_token.set("access")
        store.id_token.set("id")
        assert storage.get("access_token") == "access"

        assert controller.set_policy(PersistencePolicy.NEVER) is True

        assert storage.get("persistence_policy") == "NEVER"
        assert storage.get("access_token") is None
        assert storage.get("id_token") is None
        assert store.access_token.get() == "access"
        assert store.access_token.state is CellState.TRANSIENT

    def test_second_identical_change_performs_no_migration(
        self,
        controller: PersistencePolicyController,
        store: CredentialStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        store.access_token.set("access")
        controller.set_policy(PersistencePolicy.NEVER)

        calls: list[str] = []
        for cell in store.token_cells:
            monkeypatch.setattr(
                cell, "update_state_by_policy", lambda name=cell.name: calls.append(name)
            )
        assert controller.set_policy(PersistencePolicy.NEVER) is False
        assert calls == []

    def test_round_trip_restores_durable_storage(
        self,
        controller: PersistencePolicyController,
        store: CredentialStore,
        storage: MemoryStorage,
    ) -> None:
        store.access_token.set("access")
        store.id_token.set("id")

        controller.set_policy(PersistencePolicy.NEVER)
        controller.set_policy(PersistencePolicy.ALWAYS)

        assert storage.get("access_token") == "access"
        assert storage.get("id_token") == "id"
        assert store.access_token.state is CellState.DURABLE

    def test_identity_cells_are_not_migrated(
        self,
        controller: PersistencePolicyController,
        store: CredentialStore,
        storage: MemoryStorage,
    ) -> None:
        store.user_identity.set({"id": "u1"})
        controller.set_policy(PersistencePolicy.NEVER)
        assert storage.get("user_identity") is not None

    def test_new_policy_survives_restart(
        self, controller: PersistencePolicyController, storage: MemoryStorage
    ) -> None:
        controller.set_policy(PersistencePolicy.NEVER)
        reopened = CredentialStore(storage, PersistencePolicy.ALWAYS)
        assert reopened.current_policy() is PersistencePolicy.NEVER

    def test_recovers_from_crash_between_policy_write_and_migration(
        self, storage: MemoryStorage
    ) -> None:
        # Policy already switched to NEVER, but the durable token copies were never removed.
        storage.set("persistence_policy", "NEVER")
        storage.set("access_token", "stale-access")
        storage.set("id_token", "stale-id")

        store = CredentialStore(storage, PersistencePolicy.ALWAYS)

        assert store.access_token.get() is None
        assert storage.get("access_token") is None
        assert storage.get("id_token") is None
