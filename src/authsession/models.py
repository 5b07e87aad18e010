"""Canonical Pydantic models shared across all authsession modules.

The models fall into three groups:

**Session state** -- values cached by the credential store and handed to
callers as immutable snapshots:
    :class:`PersistencePolicy`, :class:`CellState`, :class:`AppIdentity`,
    :class:`DeviceIdentity`, :class:`UserIdentity`.

**Authorization outcome** -- produced by the external authorization process:
    :class:`AuthorizationResult`.

**Configuration** -- serialised as JSON in the user's config directory:
    :class:`StorageConfig` and :class:`SessionConfig`.

Identity models are frozen and accept unknown keys (``extra="allow"``) so
that whatever the backend returns survives a round trip through storage.
"""

from __future__ import annotations

import enum
import platform
import uuid
from typing import Any, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


# --- Session state ---


class PersistencePolicy(str, enum.Enum):
    """Whether cached authorization data survives a process restart.

    ``ALWAYS`` writes tokens to durable storage; ``NEVER`` keeps them in
    memory only, for the lifetime of the session manager.
    """

    ALWAYS = "ALWAYS"
    NEVER = "NEVER"


class CellState(str, enum.Enum):
    """Where a credential cell's value currently lives."""

    TRANSIENT = "TRANSIENT"
    DURABLE = "DURABLE"


_IdentityT = TypeVar("_IdentityT", bound="_Identity")


class _Identity(BaseModel):
    """Common behaviour for identity snapshots."""

    model_config = ConfigDict(
        frozen=True, extra="allow", populate_by_name=True, coerce_numbers_to_str=True
    )

    @classmethod
    def from_map(cls: type[_IdentityT], data: Optional[dict[str, Any]]) -> _IdentityT:
        """Build an identity from a stored key/value map (``None`` -> empty)."""
        return cls.model_validate(data or {})

    def to_map(self) -> dict[str, Any]:
        """Return the identity as a plain dict suitable for storage."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AppIdentity(_Identity):
    """Identity of the host application."""

    id: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def create(cls, app_id: str, app_version: str) -> AppIdentity:
        return cls(id=app_id, version=app_version)


class DeviceIdentity(_Identity):
    """Identity of the installation's device.

    Created once per installation by :meth:`create` and persisted; later
    sessions reload the stored snapshot.
    """

    id: Optional[str] = None
    os: Optional[str] = None
    os_version: Optional[str] = Field(default=None, alias="osVersion")
    model: Optional[str] = None

    @classmethod
    def create(cls) -> DeviceIdentity:
        """Describe the current machine with a fresh random device id."""
        return cls(
            id=str(uuid.uuid4()),
            os=platform.system() or None,
            os_version=platform.release() or None,
            model=platform.machine() or None,
        )


class UserIdentity(_Identity):
    """Identity of the authorized user, populated after a successful authorization."""

    id: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    auth_by: Optional[str] = Field(default=None, alias="authBy")


# --- Authorization outcome ---


class AuthorizationResult(BaseModel):
    """Tokens and identity produced by a successful authorization.

    Attributes:
        access_token: The bearer access token.
        id_token: The identity token sent alongside the access token.
        user_identity: The authorized user. A plain mapping is validated
            on construction, so a result that cannot be read back as a
            :class:`UserIdentity` is rejected before anything is stored.
        client_id: Registration id assigned to this installation, if the
            process performed registration.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(min_length=1)
    id_token: str = Field(min_length=1)
    user_identity: UserIdentity = Field(default_factory=UserIdentity)
    client_id: Optional[str] = None


# --- Configuration ---


class StorageConfig(BaseModel):
    """Where durable session data is kept.

    ``path`` defaults to a location under the data directory chosen by
    :func:`authsession.storage.create_storage`.
    """

    backend: Literal["file", "diskcache", "memory"] = "file"
    path: Optional[str] = None


class SessionConfig(BaseModel):
    """Configuration for one :class:`~authsession.auth.manager.AuthorizationManager`.

    Example::

        SessionConfig(
            app_id="com.example.notes",
            app_version="2.1.0",
            default_persistence_policy=PersistencePolicy.NEVER,
            storage=StorageConfig(backend="memory"),
        )
    """

    app_id: str = Field(default="authsession", description="Host application id")
    app_version: str = Field(default="0.0.0", description="Host application version")
    default_persistence_policy: PersistencePolicy = Field(
        default=PersistencePolicy.ALWAYS,
        description="Policy used until one has been explicitly set and persisted",
    )
    storage: StorageConfig = Field(default_factory=StorageConfig)
    authorization_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for the authorization process (None = forever)",
    )
    share_inflight_outcome: bool = Field(
        default=True,
        description="Callers queued behind an in-flight attempt receive its outcome",
    )
