"""ASGI entry point -- the HTML cache as Starlette middleware.

:class:`HtmlCacheMiddleware` decides per request whether the cache is
involved:

1. A request carrying the instance's bypass marker is the cache's own
   re-fetch.  It is passed straight through with the marker removed from
   the query string, so the application sees the URL the client asked for.
2. A request that is not a GET/HEAD, or that the ``exclude`` predicate
   rejects, is passed through untouched.
3. Everything else is answered from the cache; a miss re-fetches the page
   through the same pipeline.

A non-success origin answer is replayed to the client as-is, exactly as if
no cache were present.  Network failures of the re-fetch propagate to
Starlette's normal error handling.

Example::

    app = Starlette(routes=routes)
    app.add_middleware(HtmlCacheMiddleware, max_size_mb=64, ttl_ms=60_000)
"""

from __future__ import annotations

from typing import Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from htmlcache.exceptions import OriginStatusError
from htmlcache.html_cache import HtmlCache, create_html_cache
from htmlcache.models import HtmlCacheConfig
from htmlcache.response import html_response, origin_error_response


class HtmlCacheMiddleware(BaseHTTPMiddleware):
    """Serve cacheable HTML pages from an :class:`HtmlCache`.

    Args:
        app: The wrapped ASGI application.
        cache: A cache to use.  When omitted, one is built from *config* and
            *overrides* and owned by this middleware.
        config: Options for the cache built here.
        **overrides: Keyword options merged over *config*.
    """

    def __init__(
        self,
        app: ASGIApp,
        cache: Optional[HtmlCache] = None,
        config: Optional[HtmlCacheConfig] = None,
        **overrides: Any,
    ) -> None:
        super().__init__(app)
        self.cache = cache or create_html_cache(config, **overrides)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        cache = self.cache

        if cache.is_bypassed(request.url):
            request.scope["query_string"] = cache.bypass.strip_query_string(
                request.scope.get("query_string", b"")
            )
            return await call_next(request)

        if not cache.is_eligible(request):
            return await call_next(request)

        try:
            html = await cache.resolve(request.url)
        except OriginStatusError as exc:
            return origin_error_response(exc)
        return html_response(html)
