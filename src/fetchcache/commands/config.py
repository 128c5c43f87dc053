"""Config commands -- view and modify the user configuration.

Provides the ``fetchcache config`` sub-command group for reading, updating
and resetting :class:`~fetchcache.models.ApiConfig`, persisted in the
fetchcache config directory.
"""

from __future__ import annotations

from typing import Any

import typer

from fetchcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)

_OPEN_MAPPINGS = {"persistent_params"}
"""Config keys whose entries may be created by ``config set``."""


@config_app.command("show")
def config_show() -> None:
    """Show the current user configuration.

    Example::

        fetchcache config show
        fetchcache --json config show
    """
    from fetchcache.config import config_path, load_config

    config = load_config()
    info(f"Config file: {config_path()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g. 'request.timeout_ms')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the existing field (bool, int or
    str) and the result is validated before saving.  Entries of
    ``persistent_params`` may be created.

    Example::

        fetchcache config set base_url https://api.example.com
        fetchcache config set request.timeout_ms 5000
        fetchcache config set persistent_params.api_key secret
    """
    from fetchcache.config import load_config, save_config
    from fetchcache.models import ApiConfig

    data = load_config().model_dump(mode="json")

    keys = key.split(".")
    target: dict[str, Any] = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    open_mapping = len(keys) == 2 and keys[0] in _OPEN_MAPPINGS
    if final_key not in target and not open_mapping:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target.get(final_key)
    coerced: Any = value
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None

    target[final_key] = coerced

    try:
        new_config = ApiConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the configuration to defaults.

    Example::

        fetchcache config reset --force
    """
    from fetchcache.config import save_config
    from fetchcache.models import ApiConfig

    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_config(ApiConfig())
    success("Configuration reset to defaults.")
