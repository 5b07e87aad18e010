"""Helpers shared by the CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from authsession.auth.manager import AuthorizationManager
from authsession.exceptions import AuthSessionError
from authsession.output import debug, error


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report :class:`AuthSessionError` on stderr and exit with its code."""
    try:
        yield
    except AuthSessionError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@contextmanager
def open_session(ctx: typer.Context) -> Iterator[AuthorizationManager]:
    """Open the persisted session selected by the global CLI options."""
    from authsession.config import resolve_config

    obj = ctx.obj or {}
    with cli_errors():
        config = resolve_config(
            cli_config=obj.get("config"),
            cli_storage_backend=obj.get("storage_backend"),
            cli_storage_path=obj.get("storage_path"),
        )
        debug(f"Using {config.storage.backend} storage")
        with AuthorizationManager(config) as manager:
            yield manager
