"""Exception hierarchy for authsession.

All exceptions inherit from :class:`AuthSessionError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`authsession.exit_codes`.
The CLI entry point in :func:`authsession.app.main` catches
``AuthSessionError`` and exits with the appropriate code.

Several subclasses also inherit from the closest built-in exception so that
library callers can catch them idiomatically (``except ValueError`` for a bad
realm, ``except OSError`` for an unreadable connection).

Subclass hierarchy::

    AuthSessionError          (exit 1)
    +-- InvalidArgumentError  (exit 2, ValueError)
    +-- IllegalStateError     (exit 1, RuntimeError)
    +-- IOFailureError        (exit 6, OSError)
    +-- AuthorizationFailure  (exit 3)
    +-- StorageError          (exit 1)
    +-- ConfigError           (exit 1)
"""

from __future__ import annotations

from typing import Optional

from authsession.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_IO_FAILURE,
)


class AuthSessionError(Exception):
    """Base exception for all authsession errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidArgumentError(AuthSessionError, ValueError):
    """Raised for a null/empty realm, a missing listener, or a missing policy.

    Always raised synchronously, before any state is mutated.
    """

    exit_code = EXIT_INVALID_USAGE


class IllegalStateError(AuthSessionError, RuntimeError):
    """Raised when the session manager is used outside its lifecycle."""

    exit_code = EXIT_GENERIC_FAILURE


class IOFailureError(AuthSessionError, OSError):
    """Raised when the status line or headers of a response cannot be read.

    Recoverable: the caller may retry or treat the response as not
    requiring authorization.
    """

    exit_code = EXIT_IO_FAILURE


class AuthorizationFailure(AuthSessionError):
    """Reported when the external authorization process fails.

    Delivered to :meth:`~authsession.auth.process.ResponseListener.on_failure`
    rather than raised from
    :meth:`~authsession.auth.manager.AuthorizationManager.obtain_authorization`.

    Args:
        message: Human-readable description of the failure.
        cause: The underlying error reported by the process, if any.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class StorageError(AuthSessionError):
    """Raised when durable storage cannot be read or written."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigError(AuthSessionError):
    """Raised for configuration problems (invalid JSON, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE
