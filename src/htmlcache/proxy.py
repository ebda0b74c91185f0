"""Caching reverse proxy used by ``htmlcache serve``.

:func:`create_proxy_app` builds a Starlette application with a single
catch-all route that forwards requests to an origin, wrapped in
:class:`~htmlcache.middleware.HtmlCacheMiddleware`.

Only page navigations are cached: a request is eligible when its ``Accept``
header lists ``text/html``.  Assets are forwarded byte-for-byte.

The cache's re-fetch is dispatched back into the *same* application through
:class:`httpx.ASGITransport`, just like a site whose cache layer fetches its
own public URL.  The re-fetch re-enters the middleware, is recognised by its
bypass marker, and reaches the forwarding route, which asks the origin.
"""

from __future__ import annotations

import contextlib
from typing import AsyncIterator, Optional

import httpx
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from htmlcache.client.origin import OriginFetcher
from htmlcache.html_cache import create_html_cache
from htmlcache.middleware import HtmlCacheMiddleware
from htmlcache.models import HtmlCacheConfig, accepts_html, cache_everything
from htmlcache.output import OutputManager, warning

_PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Headers that describe a single connection, or that httpx already decoded.
_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
        "content-encoding",
    }
)


def _filter_headers(headers: httpx.Headers | dict[str, str]) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in _HOP_BY_HOP}


def create_proxy_app(
    origin: str,
    config: Optional[HtmlCacheConfig] = None,
    output: Optional[OutputManager] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Starlette:
    """Build the caching reverse proxy for *origin*.

    Args:
        origin: Base URL of the site being cached, e.g. ``http://localhost:3000``.
        config: Cache options.  Defaults to :class:`HtmlCacheConfig()`.  Unless
            a custom ``exclude`` is given, only requests whose ``Accept``
            header lists ``text/html`` are cached; assets pass through
            untouched.
        output: Manager for ``debug`` traces.
        upstream_transport: Optional httpx transport for origin traffic
            (tests pass :class:`httpx.MockTransport`).

    Returns:
        The Starlette app.  Its cache is available as ``app.state.html_cache``.
    """
    config = config or HtmlCacheConfig()
    if config.exclude is cache_everything:
        config = config.with_overrides(exclude=accepts_html)
    client_kwargs = {}
    if upstream_transport is not None:
        client_kwargs["transport"] = upstream_transport
    upstream = httpx.AsyncClient(
        base_url=origin,
        timeout=config.fetch_timeout,
        follow_redirects=False,
        **client_kwargs,
    )

    async def forward(request: Request) -> Response:
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        try:
            upstream_response = await upstream.request(
                request.method,
                target,
                headers=_filter_headers(dict(request.headers)),
                content=await request.body(),
            )
        except httpx.TransportError as exc:
            warning(f"Origin unreachable for {target}: {exc}")
            return Response(content="Bad Gateway", status_code=502, media_type="text/plain")
        return Response(
            content=upstream_response.content,
            status_code=upstream_response.status_code,
            headers=_filter_headers(upstream_response.headers),
        )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        await cache.aclose()
        await fetcher.aclose()
        await upstream.aclose()

    app = Starlette(
        routes=[Route("/{path:path}", forward, methods=_PROXY_METHODS)],
        lifespan=lifespan,
    )
    fetcher = OriginFetcher(
        timeout=config.fetch_timeout,
        transport=httpx.ASGITransport(app=app),
    )
    cache = create_html_cache(config, fetcher=fetcher, output=output)
    app.add_middleware(HtmlCacheMiddleware, cache=cache)
    app.state.html_cache = cache
    return app
