"""Configuration model for htmlcache.

:class:`HtmlCacheConfig` holds every recognised cache
option with its default, resolved once and validated eagerly.  It is built
directly by library users or assembled by
:func:`~htmlcache.config.resolve_config` from a JSON file and environment
variables.

The model uses Pydantic v2.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from htmlcache.cache.sizing import DEFAULT_CHUNK_BYTES, budget_units
from htmlcache.exceptions import ConfigError


OPTION_ALIASES = {"max": "max_entries", "max_size": "max_size_mb", "ttl": "ttl_ms"}


def cache_everything(request: Any) -> bool:
    """Default eligibility predicate: every request may be cached."""
    return True


def accepts_html(request: Any) -> bool:
    """Eligibility predicate for proxies: only requests that ask for HTML.

    Assets (images, stylesheets, JSON) are fetched with an ``Accept`` header
    that does not list ``text/html`` and therefore bypass the cache.
    """
    return "text/html" in request.headers.get("accept", "").lower()


class HtmlCacheConfig(BaseModel):
    """Options for one :class:`~htmlcache.html_cache.HtmlCache` instance.

    Field aliases (``max``, ``max_size``, ``ttl``) accept the short option
    names used in configuration files.

    ``exclude`` is a predicate over the inbound request: returning ``False``
    means "do not attempt caching for this request".

    Example::

        HtmlCacheConfig(max_entries=500, max_size_mb=64, ttl_ms=60_000)
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    max_entries: Optional[int] = Field(
        default=None, alias="max", ge=1, description="Ceiling on entry count"
    )
    max_size_mb: float = Field(
        default=100.0, alias="max_size", gt=0, description="Total budget in megabytes"
    )
    ttl_ms: int = Field(
        default=1000 * 60 * 5,
        alias="ttl",
        gt=0,
        description="Milliseconds an entry stays valid after insertion",
    )
    exclude: Callable[[Any], bool] = Field(
        default=cache_everything,
        description="Predicate over the inbound request; False skips caching",
    )
    debug: bool = Field(default=False, description="Trace hits, misses and sizes")
    chunk_bytes: int = Field(
        default=DEFAULT_CHUNK_BYTES, gt=0, description="Size of one budget unit in bytes"
    )
    update_age_on_get: bool = Field(
        default=False, description="Reads via get() refresh recency and age"
    )
    update_age_on_has: bool = Field(
        default=False, description="Reads via has() refresh recency and age"
    )
    single_flight: bool = Field(
        default=True, description="Coalesce concurrent misses for the same key"
    )
    fetch_timeout: Optional[float] = Field(
        default=None, gt=0, description="Origin fetch timeout in seconds"
    )

    @model_validator(mode="after")
    def _check_budget(self) -> HtmlCacheConfig:
        if self.max_units < 1:
            raise ValueError(
                f"max_size_mb={self.max_size_mb} is smaller than one "
                f"{self.chunk_bytes}-byte chunk"
            )
        return self

    @property
    def max_units(self) -> int:
        """The megabyte budget expressed in whole chunks."""
        return budget_units(self.max_size_mb, self.chunk_bytes)

    @classmethod
    def build(cls, **options: Any) -> HtmlCacheConfig:
        """Validate *options* and return a config, raising :class:`ConfigError` on failure."""
        try:
            return cls(**options)
        except ValidationError as exc:
            raise ConfigError(f"Invalid cache configuration: {exc}") from exc

    def with_overrides(self, **overrides: Any) -> HtmlCacheConfig:
        """Return a new validated config with *overrides* (names or aliases) applied."""
        merged = self.model_dump()
        for key, value in overrides.items():
            merged[OPTION_ALIASES.get(key, key)] = value
        return type(self).build(**merged)

    def public_dict(self) -> dict[str, Any]:
        """JSON-safe view of the options (the ``exclude`` callable is shown by name)."""
        data = self.model_dump(mode="json", exclude={"exclude"})
        data["exclude"] = getattr(self.exclude, "__qualname__", repr(self.exclude))
        data["max_units"] = self.max_units
        return data

