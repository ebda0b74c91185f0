"""Cache entry and expiry policy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CacheEntry:
    """One cached page with size and expiry metadata.

    Timestamps are milliseconds on the owning store's clock.

    Attributes:
        key: Normalized request URL.
        value: The cached HTML body.
        size_units: Chunks charged against the store's budget.
        inserted_at: When the entry was written (or last had its age reset).
        expires_at: ``inserted_at + ttl_ms``.
    """

    key: str
    value: str
    size_units: int
    inserted_at: float
    expires_at: float

    @classmethod
    def create(cls, key: str, value: str, size_units: int, now: float, ttl_ms: float) -> CacheEntry:
        return cls(
            key=key,
            value=value,
            size_units=size_units,
            inserted_at=now,
            expires_at=now + ttl_ms,
        )

    def is_expired(self, now: float) -> bool:
        """An entry is never served once ``now >= expires_at``."""
        return now >= self.expires_at

    def touch(self, now: float, ttl_ms: float) -> None:
        """Restart the entry's age."""
        self.inserted_at = now
        self.expires_at = now + ttl_ms

    def remaining_ms(self, now: float) -> float:
        return max(0.0, self.expires_at - now)
