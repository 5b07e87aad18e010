"""Typer application and CLI entry point for authsession.

This module wires together the top-level Typer application and registers
the built-in commands (``status``, ``header``, ``clear``, ``identity``,
``check``, ``policy``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled :class:`~authsession.exceptions.AuthSessionError`
instances exit with the error's ``exit_code``; anything else exits with
:data:`~authsession.exit_codes.EXIT_GENERIC_FAILURE`.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from authsession import __version__
from authsession.commands.config import config_app
from authsession.commands.policy import policy_app
from authsession.commands.session import (
    check_command,
    clear_command,
    header_command,
    identity_command,
    status_command,
)
from authsession.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="authsession",
    help="Inspect and manage a persisted authorization session.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("status")(status_command)
app.command("header")(header_command)
app.command("clear")(clear_command)
app.command("identity")(identity_command)
app.command("check")(check_command)
app.add_typer(policy_app, name="policy", help="Authorization persistence policy.")
app.add_typer(config_app, name="config", help="Configuration inspection.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"authsession {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Route library logging to stderr through Rich."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=False,
        rich_tracebacks=verbose,
    )
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file to use instead of the default."
    ),
    storage_backend: Optional[str] = typer.Option(
        None, "--storage-backend", help="Storage backend: file, diskcache, memory."
    ),
    storage_path: Optional[str] = typer.Option(
        None, "--storage-path", help="Location of the durable session data."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~authsession.output.OutputManager` and
    logging from CLI flags, and stores the session-selection options in
    ``ctx.obj`` for the sub-commands.
    """
    from authsession.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose, no_color)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["storage_backend"] = storage_backend
    ctx.obj["storage_path"] = storage_path


def main() -> None:
    """CLI entry point invoked by the ``authsession`` console script."""
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from authsession.exceptions import AuthSessionError
        from authsession.output import error

        if isinstance(exc, AuthSessionError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
