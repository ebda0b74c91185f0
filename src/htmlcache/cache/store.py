"""Capacity-bounded LRU store with lazy TTL expiry.

:class:`EvictionStore` keeps entries in an :class:`~collections.OrderedDict`
ordered from least to most recently written.  Two ceilings are enforced on
every :meth:`~EvictionStore.put`:

* an optional entry-count ceiling (``max_entries``), and
* a unit budget (``max_units``) where each entry is charged
  :func:`~htmlcache.cache.sizing.size_of` chunks.

Entries are evicted from the least-recent end until both hold.  Expiry is
lazy: an entry past its ``expires_at`` is dropped by the read that finds it,
and no background task ever runs.

Reads do not refresh recency or age unless ``update_age_on_get`` /
``update_age_on_has`` are set, so a hot key still expires on schedule.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Iterator, Optional

from htmlcache.cache.entry import CacheEntry
from htmlcache.cache.sizing import DEFAULT_CHUNK_BYTES, size_of
from htmlcache.cache.stats import CacheStats
from htmlcache.exceptions import ConfigError, OversizedEntryError

logger = logging.getLogger(__name__)


class DisposeReason(str, enum.Enum):
    """Why an entry left the store."""

    EVICT = "evict"
    EXPIRE = "expire"
    SET = "set"
    DELETE = "delete"


DisposeHook = Callable[[str, str, DisposeReason], None]
Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Default store clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000


def _no_dispose(key: str, value: str, reason: DisposeReason) -> None:
    pass


class EvictionStore:
    """In-memory key/value store bounded by entry count and unit budget.

    All mutations run under a re-entrant lock, so the size and count
    invariants hold when the store is shared between threads as well as
    between coroutines.

    Args:
        max_units: Total unit budget.  Must be at least 1.
        max_entries: Optional ceiling on the number of entries.
        ttl_ms: Milliseconds an entry stays valid after it is written.
        chunk_bytes: Chunk size passed to the size model.
        dispose: Called synchronously as ``dispose(key, value, reason)`` for
            every entry that leaves the store.  Defaults to a no-op.
        update_age_on_get: Let :meth:`get` refresh recency and age.
        update_age_on_has: Let :meth:`has` refresh recency and age.
        clock: Callable returning the current time in milliseconds.

    Raises:
        ConfigError: If a budget, ceiling or TTL is not positive.

    Example::

        store = EvictionStore(max_units=5, ttl_ms=60_000)
        store.put("https://example.com/", "<html></html>")
        store.get("https://example.com/")
    """

    def __init__(
        self,
        max_units: int,
        max_entries: Optional[int] = None,
        ttl_ms: float = 1000 * 60 * 5,
        chunk_bytes: int = DEFAULT_CHUNK_BYTES,
        dispose: Optional[DisposeHook] = None,
        update_age_on_get: bool = False,
        update_age_on_has: bool = False,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_units < 1:
            raise ConfigError(f"max_units must be at least 1, got {max_units}")
        if max_entries is not None and max_entries < 1:
            raise ConfigError(f"max_entries must be at least 1, got {max_entries}")
        if ttl_ms <= 0:
            raise ConfigError(f"ttl_ms must be positive, got {ttl_ms}")
        if chunk_bytes <= 0:
            raise ConfigError(f"chunk_bytes must be positive, got {chunk_bytes}")

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._max_units = max_units
        self._max_entries = max_entries
        self._ttl_ms = ttl_ms
        self._chunk_bytes = chunk_bytes
        self._dispose_hook = dispose or _no_dispose
        self._update_age_on_get = update_age_on_get
        self._update_age_on_has = update_age_on_has
        self._clock = clock or monotonic_ms
        self._units = 0

        # Statistics
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0
        self._oversized = 0

    # ------------------------------------------------------------------ #
    # Capacity
    # ------------------------------------------------------------------ #

    @property
    def max_units(self) -> int:
        return self._max_units

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    @property
    def ttl_ms(self) -> float:
        return self._ttl_ms

    @property
    def current_count(self) -> int:
        """Number of stored entries, including expired ones not yet swept."""
        with self._lock:
            return len(self._entries)

    @property
    def current_units(self) -> int:
        """Units charged by all stored entries."""
        with self._lock:
            return self._units

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    def put(self, key: str, value: str) -> None:
        """Store *value* under *key* and evict until both ceilings hold.

        Writing an existing key replaces it and moves it to the most-recent
        end; there is never more than one entry per key.

        Raises:
            OversizedEntryError: If the entry alone exceeds ``max_units``.
                Nothing is stored or evicted.
        """
        units = size_of(key, value, self._chunk_bytes)
        with self._lock:
            if units > self._max_units:
                self._oversized += 1
                raise OversizedEntryError(key, units, self._max_units)

            previous = self._entries.pop(key, None)
            if previous is not None:
                self._units -= previous.size_units
                if previous.value != value:
                    self._dispose(previous, DisposeReason.SET)

            self._entries[key] = CacheEntry.create(key, value, units, self._clock(), self._ttl_ms)
            self._units += units
            self._evict(keep=key)

    def get(self, key: str) -> Optional[str]:
        """Return the live value for *key*, or ``None`` if absent or expired."""
        with self._lock:
            entry = self._live_entry(key, refresh=self._update_age_on_get)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """Return True if *key* holds a live (non-expired) entry."""
        with self._lock:
            return self._live_entry(key, refresh=self._update_age_on_has) is not None

    def delete(self, key: str) -> bool:
        """Remove *key*.  Returns True if an entry was removed."""
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return False
            self._units -= entry.size_units
            self._dispose(entry, DisposeReason.DELETE)
            return True

    def clear(self) -> None:
        """Remove every entry, disposing each one."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            self._units = 0
            for entry in entries:
                self._dispose(entry, DisposeReason.DELETE)

    def purge_expired(self) -> int:
        """Drop every expired entry now.  Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                self._expire(key)
            return len(expired)

    def keys(self) -> list[str]:
        """Live keys, least recently written first."""
        with self._lock:
            self.purge_expired()
            return list(self._entries.keys())

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                units=self._units,
                max_units=self._max_units,
                max_entries=self._max_entries,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                oversized=self._oversized,
            )

    def __len__(self) -> int:
        return self.current_count

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _live_entry(self, key: str, refresh: bool) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if entry.is_expired(now):
            self._expire(key)
            return None
        if refresh:
            entry.touch(now, self._ttl_ms)
            self._entries.move_to_end(key)
        return entry

    def _expire(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._units -= entry.size_units
        self._expirations += 1
        self._dispose(entry, DisposeReason.EXPIRE)

    def _over_capacity(self) -> bool:
        if self._units > self._max_units:
            return True
        return self._max_entries is not None and len(self._entries) > self._max_entries

    def _evict(self, keep: str) -> None:
        """Evict least recently written entries until both ceilings hold."""
        while self._over_capacity():
            oldest = next(iter(self._entries))
            if oldest == keep:
                # Only the new entry is left and it already fits the budget.
                break
            entry = self._entries.pop(oldest)
            self._units -= entry.size_units
            self._evictions += 1
            self._dispose(entry, DisposeReason.EVICT)

    def _dispose(self, entry: CacheEntry, reason: DisposeReason) -> None:
        try:
            self._dispose_hook(entry.key, entry.value, reason)
        except Exception:
            logger.exception("dispose hook failed for %s (%s)", entry.key, reason.value)
