"""Cache statistics model."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class CacheStats(BaseModel):
    """Snapshot of an :class:`~htmlcache.cache.store.EvictionStore`."""

    entries: int = 0
    units: int = 0
    max_units: int = 0
    max_entries: Optional[int] = None
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0
    oversized: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
