"""Size model used for budget accounting.

Every stored page is charged a whole number of *chunks* rather than an
exact byte count.  The footprint of a key/value pair is approximated as
two bytes per character, which is cheap enough to compute on every insert
and coarse enough that the totals stay monotonic.
"""

from __future__ import annotations

import math

BYTES_PER_CHAR = 2

DEFAULT_CHUNK_BYTES = 10_000 * BYTES_PER_CHAR
"""One chunk models a 10 000 character page."""

_BYTES_PER_MB = 1024 * 1024


def footprint_bytes(key: str, value: str) -> int:
    """Approximate in-memory footprint of *key* and *value* in bytes."""
    return BYTES_PER_CHAR * (len(key) + len(value))


def size_of(key: str, value: str, chunk_bytes: int = DEFAULT_CHUNK_BYTES) -> int:
    """Return the number of chunks charged for storing *value* under *key*.

    Footprints of at least one chunk are rounded up to whole chunks; anything
    smaller is charged the minimum of one chunk, so even an empty page costs
    something.

    Args:
        key: The cache key (normalized URL).
        value: The cached HTML body.
        chunk_bytes: Size of one chunk in bytes.

    Returns:
        An integer ``>= 1``.
    """
    footprint = footprint_bytes(key, value)
    if footprint >= chunk_bytes:
        return math.ceil(footprint / chunk_bytes)
    return 1


def budget_units(max_size_mb: float, chunk_bytes: int = DEFAULT_CHUNK_BYTES) -> int:
    """Convert a megabyte budget into whole chunks (rounded down)."""
    return math.floor(max_size_mb * _BYTES_PER_MB / chunk_bytes)
