"""HTTP client used to refill the cache from the origin.

:class:`OriginFetcher` wraps :class:`httpx.AsyncClient` and maps transport
failures and non-2xx answers onto
:class:`~htmlcache.exceptions.OriginFetchError` subclasses.
"""

from htmlcache.client.origin import OriginFetcher

__all__ = ["OriginFetcher"]
