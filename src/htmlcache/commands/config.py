"""Config commands -- inspect the resolved cache configuration.

Provides the ``htmlcache config`` sub-command group.  Options are resolved
with the same precedence chain the server uses
(:func:`~htmlcache.config.resolve_config`), so ``config show`` prints exactly
what ``htmlcache serve`` would run with.
"""

from __future__ import annotations

from typing import Optional

import typer

from htmlcache.output import error, format_response, info


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Project config file (default ./htmlcache.json)."
    ),
) -> None:
    """Show the effective cache configuration.

    Example::

        htmlcache config show
        htmlcache --json config show --config deploy/htmlcache.json
    """
    from htmlcache.config import resolve_config, user_config_path
    from htmlcache.exceptions import ConfigError

    try:
        config = resolve_config(config_file)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)
    info(f"User config: {user_config_path()}")
    format_response(config.public_dict())


@config_app.command("path")
def config_path() -> None:
    """Print the user config file location."""
    from htmlcache.config import user_config_path
    from htmlcache.output import get_output

    get_output().print_data(str(user_config_path()))
