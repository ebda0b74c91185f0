"""Response materialization -- turns cached or fetched bodies into responses.

This module bridges the cache and the ASGI pipeline.  :func:`html_response`
wraps a page body into a Starlette :class:`~starlette.responses.Response`
with an HTML content type and no other transformation.
:func:`origin_error_response` replays a non-success origin answer so the
client sees exactly what it would have seen without the cache.
"""

from __future__ import annotations

from starlette.responses import Response

from htmlcache.exceptions import OriginStatusError

HTML_MEDIA_TYPE = "text/html"


def html_response(html: str, status_code: int = 200) -> Response:
    """Wrap *html* in a response with ``content-type: text/html``."""
    return Response(content=html, status_code=status_code, media_type=HTML_MEDIA_TYPE)


def origin_error_response(exc: OriginStatusError) -> Response:
    """Replay the origin's non-success response (status, body, content type)."""
    response = Response(content=exc.body, status_code=exc.status_code)
    if exc.content_type:
        response.headers["content-type"] = exc.content_type
    return response
