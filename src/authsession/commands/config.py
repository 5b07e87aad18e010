"""Config commands -- inspect and modify the session configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from authsession.commands._session import cli_errors
from authsession.exceptions import InvalidArgumentError
from authsession.output import get_output, success

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the effective configuration after applying flags and env vars."""
    from authsession.config import resolve_config

    obj = ctx.obj or {}
    with cli_errors():
        config = resolve_config(
            cli_config=obj.get("config"),
            cli_storage_backend=obj.get("storage_backend"),
            cli_storage_path=obj.get("storage_path"),
        )
    data = config.model_dump(mode="json")
    storage = data.pop("storage")
    data["storage.backend"] = storage["backend"]
    data["storage.path"] = storage["path"]
    get_output().print_mapping(data, title="Configuration")


@config_app.command("path")
def config_path_command() -> None:
    """Print the location of the config file."""
    from authsession.config import config_path

    get_output().print_data(str(config_path()))


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'storage.backend')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a value in the config file (``--config`` or the default location).

    The value is coerced to the field's current type and the whole file is
    validated before it is written.

    Example::

        authsession config set default_persistence_policy never
        authsession config set storage.backend diskcache
        authsession config set authorization_timeout 30
    """
    from authsession.config import _parse_policy, load_config, save_config
    from authsession.models import SessionConfig

    obj = ctx.obj or {}
    path = Path(obj["config"]).expanduser() if obj.get("config") else None
    with cli_errors():
        data = load_config(path).model_dump(mode="json")

        target: dict[str, Any] = data
        *parents, final_key = key.split(".")
        for part in parents:
            if not isinstance(target.get(part), dict):
                raise InvalidArgumentError(f"Invalid config key: {key}")
            target = target[part]
        if final_key not in target or isinstance(target[final_key], dict):
            raise InvalidArgumentError(f"Unknown config key: {key}")

        current = target[final_key]
        coerced: Any = value
        if final_key == "default_persistence_policy":
            coerced = _parse_policy(value, key).value
        elif isinstance(current, bool):
            coerced = value.strip().lower() in ("true", "1", "yes")
        target[final_key] = coerced

        try:
            new_config = SessionConfig.model_validate(data)
        except ValueError as exc:
            raise InvalidArgumentError(f"Invalid value for {key}: {exc}") from None
        save_config(new_config, path)
    success(f"Set {key} = {coerced}")
