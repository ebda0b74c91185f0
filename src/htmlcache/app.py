"""Typer application and CLI entry point for htmlcache.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``serve`` and ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It installs a SIGINT handler and invokes the Typer app;
:class:`~htmlcache.exceptions.HtmlCacheError` instances end the process with
the error's ``exit_code``.
"""

from __future__ import annotations

import signal
import sys
from typing import Any

import typer

from htmlcache import __version__
from htmlcache.commands.config import config_app
from htmlcache.commands.serve import serve_command
from htmlcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="htmlcache",
    help="Read-through HTML response cache for ASGI sites.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("serve")(serve_command)
app.add_typer(config_app, name="config", help="Configuration inspection.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"htmlcache {__version__}")
        raise typer.Exit()


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
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~htmlcache.output.OutputManager` from
    CLI flags.
    """
    from htmlcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``htmlcache`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from htmlcache.exceptions import HtmlCacheError
        from htmlcache.output import error

        if isinstance(exc, HtmlCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
