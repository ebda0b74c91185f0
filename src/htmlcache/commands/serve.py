"""Serve command -- run the caching reverse proxy.

``htmlcache serve ORIGIN`` starts a uvicorn server whose every GET/HEAD
request for an HTML page is answered through
:class:`~htmlcache.middleware.HtmlCacheMiddleware`.
"""

from __future__ import annotations

from typing import Optional

import typer

from htmlcache.output import error, get_output, info


def serve_command(
    origin: str = typer.Argument(help="Base URL of the site to cache, e.g. http://localhost:3000."),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", help="Port to bind."),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Project config file (default ./htmlcache.json)."
    ),
    max_entries: Optional[int] = typer.Option(None, "--max", help="Entry-count ceiling."),
    max_size_mb: Optional[float] = typer.Option(
        None, "--max-size-mb", help="Total budget in megabytes."
    ),
    ttl_ms: Optional[int] = typer.Option(None, "--ttl-ms", help="Entry lifetime in milliseconds."),
    debug: Optional[bool] = typer.Option(
        None, "--debug/--no-debug", help="Trace cache hits, misses and sizes."
    ),
) -> None:
    """Run a caching reverse proxy in front of ORIGIN.

    The global ``--verbose`` flag turns on cache tracing unless
    ``--no-debug`` is given.

    Example::

        htmlcache serve http://localhost:3000 --port 8080 --ttl-ms 60000
    """
    import uvicorn

    from htmlcache.config import resolve_config
    from htmlcache.exceptions import ConfigError
    from htmlcache.proxy import create_proxy_app

    if debug is None and get_output().is_verbose:
        debug = True
    try:
        config = resolve_config(
            config_file,
            max_entries=max_entries,
            max_size_mb=max_size_mb,
            ttl_ms=ttl_ms,
            debug=debug,
        )
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)
    app = create_proxy_app(origin, config)
    info(
        f"Caching {origin} on http://{host}:{port} "
        f"({config.max_units} units, ttl {config.ttl_ms} ms)"
    )
    uvicorn.run(app, host=host, port=port, log_level="info" if config.debug else "warning")
