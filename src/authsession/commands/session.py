"""Session commands -- inspect and clear the persisted authorization session.

Provides the top-level ``status``, ``header``, ``clear``, ``identity``, and
``check`` commands.

Typical workflow::

    authsession status             # what is cached?
    authsession identity device    # show the installation's device identity
    authsession clear              # forget tokens and user identity
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import typer

from authsession.auth.detector import is_authorization_required
from authsession.commands._session import cli_errors, open_session
from authsession.exceptions import InvalidArgumentError
from authsession.exit_codes import EXIT_AUTH_FAILURE
from authsession.output import OutputFormat, error, get_output, success


class IdentityKind(str, Enum):
    APP = "app"
    DEVICE = "device"
    USER = "user"


def status_command(ctx: typer.Context) -> None:
    """Show the cached session without revealing any token."""
    with open_session(ctx) as manager:
        user = manager.get_user_identity()
        get_output().print_mapping(
            {
                "client_id": manager.get_client_id(),
                "persistence_policy": manager.get_authorization_persistence_policy().value,
                "authorized": manager.get_cached_authorization_header() is not None,
                "user": user.display_name or user.id,
                "device_id": manager.get_device_identity().id,
            },
            title="Authorization session",
        )


def header_command(ctx: typer.Context) -> None:
    """Print the cached Authorization header value (exit 3 when there is none)."""
    with open_session(ctx) as manager:
        header = manager.get_cached_authorization_header()
    if header is None:
        error("No cached authorization header.")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)
    get_output().print_data(header)


def clear_command(ctx: typer.Context) -> None:
    """Clear the access token, id token, and user identity."""
    with open_session(ctx) as manager:
        manager.clear_authorization_data()
    success("Authorization data cleared.")


def identity_command(
    ctx: typer.Context,
    kind: IdentityKind = typer.Argument(help="Which identity to show."),
) -> None:
    """Show the app, device, or user identity snapshot."""
    with open_session(ctx) as manager:
        if kind is IdentityKind.APP:
            identity = manager.get_app_identity()
        elif kind is IdentityKind.DEVICE:
            identity = manager.get_device_identity()
        else:
            identity = manager.get_user_identity()
        get_output().print_mapping(identity.to_map(), title=f"{kind.value} identity")


def _parse_headers(raw_headers: list[str]) -> dict[str, list[str]]:
    headers: dict[str, list[str]] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise InvalidArgumentError(f"Invalid header '{raw}'; expected 'Name: value'")
        headers.setdefault(name.strip(), []).append(value.strip())
    return headers


def check_command(
    status_code: int = typer.Argument(help="HTTP status code of the response."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Response header as 'Name: value' (repeatable)."
    ),
) -> None:
    """Decide whether a response would require an authorization challenge."""
    with cli_errors():
        headers = _parse_headers(header or [])
    required = is_authorization_required(status_code, headers)
    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_mapping({"required": required})
    else:
        output.print_data("required" if required else "not required")
