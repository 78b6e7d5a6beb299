"""Core types for the cachedquery library."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value with metadata."""

    key: str
    value: T
    stored_at: int  # Unix timestamp ms
    ttl_ms: int
    critical: bool = False

    def age(self, now: int) -> int:
        """Milliseconds elapsed since the entry was stored."""
        return now - self.stored_at

    def is_fresh(self, now: int) -> bool:
        """Check whether the entry is still inside its TTL."""
        return self.age(now) < self.ttl_ms


@dataclass(frozen=True, slots=True)
class FetchResult(Generic[T]):
    """What a fetch function hands back: data, or an error, like the backend SDK."""

    data: T | None
    error: Any | None = None


@dataclass(frozen=True, slots=True)
class QueryResult(Generic[T]):
    """Uniform result of a cached query."""

    data: T | None
    error: Any | None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def stale(self) -> bool:
        """Cached data returned in place of a failed refresh."""
        return self.from_cache and self.error is not None


class StalePolicy(str, Enum):
    """Which stale entries may stand in for a failed refresh."""

    CRITICAL = "critical"  # only reads flagged critical_data
    ALWAYS = "always"
    NEVER = "never"


FetchFn = Callable[[], Awaitable[FetchResult[T]]]

# Duration type alias
Duration = str | int | timedelta  # "30s", "10m", "2h", "1d", milliseconds or timedelta
