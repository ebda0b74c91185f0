"""In-memory page store for htmlcache.

This package holds the synchronous core of the cache: the size model
(:mod:`~htmlcache.cache.sizing`), the entry and its expiry policy
(:mod:`~htmlcache.cache.entry`), and :class:`EvictionStore`, the
count- and budget-bounded LRU store that owns every entry.

The store never performs I/O.  Origin re-fetches are orchestrated one level
up by :class:`~htmlcache.html_cache.HtmlCache`.
"""

from htmlcache.cache.entry import CacheEntry
from htmlcache.cache.sizing import budget_units, size_of
from htmlcache.cache.stats import CacheStats
from htmlcache.cache.store import DisposeReason, EvictionStore

__all__ = [
    "CacheEntry",
    "CacheStats",
    "DisposeReason",
    "EvictionStore",
    "budget_units",
    "size_of",
]
