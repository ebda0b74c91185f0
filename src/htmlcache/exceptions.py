"""Exception hierarchy for htmlcache.

All exceptions inherit from :class:`HtmlCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`htmlcache.exit_codes`.
Only configuration and origin-fetch errors cross the public boundary of the
cache; eviction and expiry bookkeeping never raise.

Subclass hierarchy::

    HtmlCacheError (exit 1)
    +-- ConfigError              (exit 3)
    +-- OversizedEntryError      (exit 1)
    +-- OriginFetchError         (exit 5)
        +-- OriginConnectionError (exit 6)
        +-- OriginStatusError     (exit 5)
"""

from __future__ import annotations

from htmlcache.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_ORIGIN_ERROR,
)


class HtmlCacheError(Exception):
    """Base exception for all htmlcache errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(HtmlCacheError):
    """Raised for invalid cache options (non-positive budget or TTL, bad config files)."""

    exit_code = EXIT_CONFIG_ERROR


class OversizedEntryError(HtmlCacheError):
    """Raised when a single entry's size exceeds the whole unit budget.

    The store is left unchanged; nothing is evicted to make room.
    """

    def __init__(self, key: str, size_units: int, max_units: int):
        super().__init__(
            f"Entry for {key!r} needs {size_units} units, budget is {max_units}"
        )
        self.key = key
        self.size_units = size_units
        self.max_units = max_units


class OriginFetchError(HtmlCacheError):
    """Base class for failures of the origin re-fetch issued on a cache miss."""

    exit_code = EXIT_ORIGIN_ERROR

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class OriginConnectionError(OriginFetchError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class OriginStatusError(OriginFetchError):
    """Raised when the origin answers the re-fetch with a non-2xx status.

    The origin's body and content type are kept so that the request path can
    replay the response exactly as if no cache were present.
    """

    def __init__(
        self,
        url: str,
        status_code: int,
        body: str = "",
        content_type: str | None = None,
    ):
        super().__init__(f"HTTP {status_code} from origin for {url}", url=url)
        self.status_code = status_code
        self.body = body
        self.content_type = content_type
