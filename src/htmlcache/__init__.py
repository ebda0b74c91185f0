"""htmlcache -- read-through HTML response cache for ASGI sites.

This package keeps rendered HTML pages in an in-process, size-bounded LRU
store with a time-to-live.  On a miss the cache re-fetches the page from its
own URL, tagged with a per-instance bypass marker so the re-fetch passes
straight through the cache instead of recursing into it.

Typical usage::

    app.add_middleware(HtmlCacheMiddleware, max_size_mb=64, ttl_ms=60_000)

or, as a standalone caching proxy::

    htmlcache serve http://localhost:3000 --port 8080

Modules:
    app: Typer application and CLI entry point.
    html_cache: The read-through orchestrator and its factory.
    middleware: Starlette middleware entry point.
    proxy: Caching reverse proxy used by ``htmlcache serve``.
    bypass: Per-instance bypass marker for the cache's own re-fetches.
    models: Pydantic configuration model.
    config: XDG-aware configuration loading and precedence.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
