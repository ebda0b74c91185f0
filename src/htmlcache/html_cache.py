"""Read-through HTML cache: lookup, miss-path re-fetch, and bypass signalling.

:class:`HtmlCache` ties the pieces together:

* an :class:`~htmlcache.cache.store.EvictionStore` holding pages keyed by
  normalized URL,
* a :class:`~htmlcache.bypass.BypassSignal` unique to the instance, and
* an :class:`~htmlcache.client.origin.OriginFetcher` used on misses.

On a miss, :meth:`HtmlCache.resolve` fetches the page from its own URL with
the bypass marker attached, stores the body, and returns it.  Concurrent
misses for the same key share one in-flight fetch (single-flight); every
waiter receives the same body or the same exception.  Fetch failures are
never retried and never cached, and stale pages are never served.

Example::

    cache = create_html_cache(max_size_mb=64, ttl_ms=60_000)
    html = await cache.resolve("https://shop.example.com/items")
    await cache.aclose()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from htmlcache.bypass import BypassSignal, URLLike
from htmlcache.cache.stats import CacheStats
from htmlcache.cache.store import Clock, DisposeHook, EvictionStore
from htmlcache.client.origin import OriginFetcher
from htmlcache.exceptions import OversizedEntryError
from htmlcache.models import HtmlCacheConfig
from htmlcache.output import OutputManager

logger = logging.getLogger(__name__)

CACHEABLE_METHODS = frozenset({"GET", "HEAD"})


class _Flight:
    """One in-flight origin fetch and the number of callers awaiting it."""

    __slots__ = ("task", "waiters")

    def __init__(self, task: asyncio.Task[str]) -> None:
        self.task = task
        self.waiters = 0


class HtmlCache:
    """A per-instance HTML page cache with origin re-fetch on miss.

    Args:
        config: Validated options.  Defaults to :class:`HtmlCacheConfig()`.
        fetcher: Origin fetcher.  One is created (and owned) from
            ``config.fetch_timeout`` when omitted.
        output: Manager receiving ``debug`` traces.  When ``config.debug`` is
            set and no manager is given, a verbose one writing to stderr is
            created.
        dispose: Hook called for every entry leaving the store.
        clock: Millisecond clock for the store (tests inject a fake one).
    """

    def __init__(
        self,
        config: Optional[HtmlCacheConfig] = None,
        fetcher: Optional[OriginFetcher] = None,
        output: Optional[OutputManager] = None,
        dispose: Optional[DisposeHook] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config or HtmlCacheConfig()
        self._bypass = BypassSignal()
        self._store = EvictionStore(
            max_units=self._config.max_units,
            max_entries=self._config.max_entries,
            ttl_ms=self._config.ttl_ms,
            chunk_bytes=self._config.chunk_bytes,
            dispose=dispose,
            update_age_on_get=self._config.update_age_on_get,
            update_age_on_has=self._config.update_age_on_has,
            clock=clock,
        )
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or OriginFetcher(timeout=self._config.fetch_timeout)
        self._output = output
        if self._config.debug and self._output is None:
            self._output = OutputManager(verbose=True)
        self._inflight: dict[str, _Flight] = {}

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> HtmlCacheConfig:
        return self._config

    @property
    def store(self) -> EvictionStore:
        return self._store

    @property
    def bypass(self) -> BypassSignal:
        return self._bypass

    @property
    def inflight_count(self) -> int:
        """Number of origin fetches currently in flight (single-flight mode)."""
        return len(self._inflight)

    def stats(self) -> CacheStats:
        return self._store.stats()

    # ------------------------------------------------------------------ #
    # Eligibility and keys
    # ------------------------------------------------------------------ #

    def cache_key(self, url: URLLike) -> str:
        """Normalize *url* into a cache key (no fragment, no bypass marker)."""
        without_fragment = str(url).split("#", 1)[0]
        return str(self._bypass.strip(without_fragment))

    def is_bypassed(self, url: URLLike) -> bool:
        """True if *url* carries this instance's bypass marker."""
        return self._bypass.is_marked(url)

    def is_eligible(self, request: Any) -> bool:
        """Decide whether *request* goes through the cache.

        A request carrying the bypass marker is rejected before the
        ``exclude`` predicate is consulted, so the predicate never sees the
        cache's own re-fetches.
        """
        if request.method.upper() not in CACHEABLE_METHODS:
            return False
        if self.is_bypassed(request.url):
            return False
        return bool(self._config.exclude(request))

    # ------------------------------------------------------------------ #
    # Read-through
    # ------------------------------------------------------------------ #

    async def resolve(self, url: URLLike) -> str:
        """Return the page for *url*, fetching and storing it on a miss.

        Raises:
            OriginConnectionError: The re-fetch failed at the network level.
            OriginStatusError: The origin answered with a non-2xx status.
        """
        key = self.cache_key(url)
        html = self._store.get(key)
        if html is not None:
            self._trace(f"get html cache: {key}")
            return html

        if not self._config.single_flight:
            return await self._refill(key)
        return await self._join_flight(key)

    async def aclose(self) -> None:
        """Cancel in-flight fetches, close the owned fetcher and drop every entry."""
        for flight in list(self._inflight.values()):
            flight.task.cancel()
        self._inflight.clear()
        if self._owns_fetcher:
            await self._fetcher.aclose()
        self._store.clear()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _join_flight(self, key: str) -> str:
        flight = self._inflight.get(key)
        if flight is None:
            flight = _Flight(asyncio.ensure_future(self._refill(key)))
            self._inflight[key] = flight
            flight.task.add_done_callback(lambda task: self._forget(key, task))
        else:
            self._trace(f"join in-flight fetch: {key}")

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            # The last caller to leave cancels a fetch nobody is waiting for.
            if flight.waiters == 0 and not flight.task.done():
                flight.task.cancel()
                # Later misses start a fresh fetch instead of joining this one.
                if self._inflight.get(key) is flight:
                    del self._inflight[key]

    def _forget(self, key: str, task: asyncio.Task[str]) -> None:
        flight = self._inflight.get(key)
        if flight is not None and flight.task is task:
            del self._inflight[key]

    async def _refill(self, key: str) -> str:
        self._trace(f"miss, fetching origin: {key}")
        html = await self._fetcher.fetch_text(self._bypass.mark(key))
        self._remember(key, html)
        return html

    def _remember(self, key: str, html: str) -> None:
        try:
            self._store.put(key, html)
        except OversizedEntryError as exc:
            logger.warning("%s; serving uncached", exc)
            self._trace(f"{exc}; serving uncached")
            return
        self._trace(f"set html cache: {key}")
        self._trace(
            f"html cache size: {self._store.current_count} entries, "
            f"{self._store.current_units}/{self._store.max_units} units"
        )

    def _trace(self, message: str) -> None:
        logger.debug(message)
        if self._config.debug and self._output is not None:
            self._output.debug(message)


def create_html_cache(
    config: Optional[HtmlCacheConfig] = None,
    *,
    fetcher: Optional[OriginFetcher] = None,
    output: Optional[OutputManager] = None,
    dispose: Optional[DisposeHook] = None,
    clock: Optional[Clock] = None,
    **overrides: Any,
) -> HtmlCache:
    """Build an :class:`HtmlCache` from *config* and/or keyword options.

    Keyword *overrides* are merged over *config* (or over the defaults) and
    validated once.

    Raises:
        ConfigError: If the merged options are invalid.

    Example::

        cache = create_html_cache(max=1000, ttl=30_000, debug=True)
    """
    if config is None:
        config = HtmlCacheConfig.build(**overrides)
    elif overrides:
        config = config.with_overrides(**overrides)
    return HtmlCache(config, fetcher=fetcher, output=output, dispose=dispose, clock=clock)
