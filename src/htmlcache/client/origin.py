"""Asynchronous origin fetcher used on cache misses.

:class:`OriginFetcher` wraps :class:`httpx.AsyncClient` and issues the plain
GET that refills the cache.  Unlike a general API client it never retries:
a network failure or a non-2xx answer is raised once and propagates to the
request path unchanged, and nothing is cached.

Cancelling the coroutine that awaits :meth:`OriginFetcher.fetch_text`
aborts the underlying httpx request, so an aborted inbound request does not
keep an outbound connection open.
"""

from __future__ import annotations

from typing import Optional

import httpx

from htmlcache.bypass import URLLike
from htmlcache.exceptions import OriginConnectionError, OriginStatusError


class OriginFetcher:
    """Fetches page bodies from the origin.

    The underlying :class:`httpx.AsyncClient` is created lazily on first use
    or when entering the async context manager, and is released by
    :meth:`aclose`.

    Args:
        timeout: Request timeout in seconds.  ``None`` disables the timeout.
        headers: Extra headers sent with every re-fetch.
        transport: Optional httpx transport (e.g. :class:`httpx.MockTransport`
            or :class:`httpx.ASGITransport`).

    Example::

        async with OriginFetcher(timeout=10) as fetcher:
            html = await fetcher.fetch_text("https://example.com/")
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> OriginFetcher:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def fetch_text(self, url: URLLike) -> str:
        """GET *url* and return the decoded body.

        Raises:
            OriginConnectionError: On network or timeout errors.
            OriginStatusError: On a non-2xx response.
        """
        client = self._ensure_client()
        try:
            response = await client.get(str(url))
        except httpx.TransportError as exc:
            raise OriginConnectionError(f"Origin fetch failed: {exc}", url=str(url)) from exc

        if not response.is_success:
            raise OriginStatusError(
                str(url),
                response.status_code,
                body=response.text,
                content_type=response.headers.get("content-type"),
            )
        return response.text

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs = {}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                follow_redirects=True,
                **kwargs,
            )
        return self._client
