"""Bypass marker for re-fetches issued by the cache itself.

On a miss the cache fetches the page from its own URL.  When the cache sits
in front of the application that serves that URL, the re-fetch comes back
through the same pipeline as an inbound request.  :class:`BypassSignal`
tags the re-fetch with a query parameter named after a random per-instance
token so the entry point can recognise it and pass it straight through
instead of recursing into the cache.

Example::

    signal = BypassSignal()
    url = signal.mark("https://shop.example.com/items?page=2")
    signal.is_marked(url)      # True
    signal.strip(url)          # https://shop.example.com/items?page=2
"""

from __future__ import annotations

import secrets
from typing import Union

import httpx

MARKER_VALUE = "1"

URLLike = Union[str, httpx.URL]


class BypassSignal:
    """A collision-resistant marker unique to one cache instance.

    Args:
        token: Parameter name to use.  Generated with :mod:`secrets` when
            omitted; only tests should pass one.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token or secrets.token_urlsafe(16)
        self._token_bytes = self._token.encode("ascii")

    @property
    def token(self) -> str:
        return self._token

    def mark(self, url: URLLike) -> httpx.URL:
        """Return *url* with ``<token>=1`` set."""
        return httpx.URL(str(url)).copy_set_param(self._token, MARKER_VALUE)

    def is_marked(self, url: URLLike) -> bool:
        """True only when the marker parameter is present with value ``"1"``."""
        return httpx.URL(str(url)).params.get(self._token) == MARKER_VALUE

    def strip(self, url: URLLike) -> httpx.URL:
        """Return *url* without the marker parameter."""
        parsed = httpx.URL(str(url))
        if self._token not in parsed.params:
            return parsed
        return parsed.copy_remove_param(self._token)

    def strip_query_string(self, raw: bytes) -> bytes:
        """Drop the marker from a raw ASGI ``query_string``.

        The remaining pairs are kept byte-for-byte, so the downstream app
        sees the query exactly as the client encoded it.
        """
        if self._token_bytes not in raw:
            return raw
        pairs = [
            pair
            for pair in raw.split(b"&")
            if pair and pair.split(b"=", 1)[0] != self._token_bytes
        ]
        return b"&".join(pairs)

    def __repr__(self) -> str:
        return f"BypassSignal(token={self._token[:4]}...)"
