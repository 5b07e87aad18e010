"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for authsession:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.authsession/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Session config** -- A single :class:`~authsession.models.SessionConfig`
  JSON file. See :func:`load_config` and :func:`save_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the config file into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a crash never leaves a half-written file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from authsession.exceptions import ConfigError
from authsession.models import PersistencePolicy, SessionConfig

_APP_NAME = "authsession"
_CONFIG_FILENAME = "config.json"

ENV_PERSISTENCE_POLICY = "AUTHSESSION_PERSISTENCE_POLICY"
ENV_STORAGE_BACKEND = "AUTHSESSION_STORAGE_BACKEND"
ENV_STORAGE_PATH = "AUTHSESSION_STORAGE_PATH"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/authsession/`` (default
    ``~/.config/authsession/``). On macOS/Windows: ``~/.authsession/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (durable session storage), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/authsession/`` (default
    ``~/.local/share/authsession/``). On macOS/Windows: ``~/.authsession/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is
    given the permissions are applied before any content is written.
    On any failure the temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Session config ---


def config_path() -> Path:
    """Path to the session config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> SessionConfig:
    """Load the session configuration.

    Args:
        path: Explicit config file. Defaults to :func:`config_path`.

    Returns:
        The deserialised :class:`~authsession.models.SessionConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = path or config_path()
    if not path.is_file():
        return SessionConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return SessionConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: SessionConfig, path: Optional[Path] = None) -> None:
    """Persist the session configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(path or config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def _parse_policy(value: str, origin: str) -> PersistencePolicy:
    try:
        return PersistencePolicy(value.strip().upper())
    except ValueError:
        raise ConfigError(
            f"Invalid persistence policy '{value}' ({origin}); "
            "expected ALWAYS or NEVER"
        ) from None


def resolve_config(
    cli_config: Optional[str] = None,
    cli_policy: Optional[str] = None,
    cli_storage_backend: Optional[str] = None,
    cli_storage_path: Optional[str] = None,
) -> SessionConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``AUTHSESSION_PERSISTENCE_POLICY``,
           ``AUTHSESSION_STORAGE_BACKEND``, ``AUTHSESSION_STORAGE_PATH``)
        3. Config file (``--config`` or ``~/.config/authsession/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~authsession.models.SessionConfig`.

    Raises:
        ConfigError: If the config file or an override value is invalid.
    """
    config = load_config(Path(cli_config).expanduser() if cli_config else None)
    overrides: dict[str, object] = {}
    storage_overrides: dict[str, object] = {}

    env_policy = os.environ.get(ENV_PERSISTENCE_POLICY)
    if env_policy:
        overrides["default_persistence_policy"] = _parse_policy(
            env_policy, ENV_PERSISTENCE_POLICY
        )
    if cli_policy is not None:
        overrides["default_persistence_policy"] = _parse_policy(cli_policy, "--policy")

    env_backend = os.environ.get(ENV_STORAGE_BACKEND)
    if env_backend:
        storage_overrides["backend"] = env_backend
    if cli_storage_backend is not None:
        storage_overrides["backend"] = cli_storage_backend

    env_path = os.environ.get(ENV_STORAGE_PATH)
    if env_path:
        storage_overrides["path"] = env_path
    if cli_storage_path is not None:
        storage_overrides["path"] = cli_storage_path

    if storage_overrides:
        storage_data = config.storage.model_dump()
        storage_data.update(storage_overrides)
        overrides["storage"] = storage_data

    if not overrides:
        return config
    data = config.model_dump()
    data.update(overrides)
    try:
        return SessionConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration override: {exc}") from exc
