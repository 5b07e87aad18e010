"""Policy commands -- show or change the authorization persistence policy.

Changing the policy migrates cached tokens immediately: ``never`` removes
them from durable storage (they stay valid for the running process only),
``always`` writes them back.
"""

from __future__ import annotations

from enum import Enum

import typer

from authsession.commands._session import open_session
from authsession.output import get_output, info, success

policy_app = typer.Typer(no_args_is_help=True)


class PolicyChoice(str, Enum):
    ALWAYS = "always"
    NEVER = "never"


@policy_app.command("show")
def policy_show(ctx: typer.Context) -> None:
    """Print the current persistence policy."""
    with open_session(ctx) as manager:
        get_output().print_data(manager.get_authorization_persistence_policy().value)


@policy_app.command("set")
def policy_set(
    ctx: typer.Context,
    policy: PolicyChoice = typer.Argument(help="New persistence policy."),
) -> None:
    """Change the persistence policy and migrate cached tokens."""
    with open_session(ctx) as manager:
        changed = manager.set_authorization_persistence_policy(policy.value)
    if changed:
        success(f"Persistence policy set to {policy.value.upper()}.")
    else:
        info(f"Persistence policy already {policy.value.upper()}.")
