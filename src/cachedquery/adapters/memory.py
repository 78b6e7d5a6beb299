"""In-memory storage adapter (async only)."""

import asyncio
import logging
import math
from collections import OrderedDict

from cachedquery.types import CacheEntry

logger = logging.getLogger(__name__)

# Share of entries dropped once max_items is exceeded
EVICTION_FRACTION = 0.2


class AsyncMemoryAdapter:
    """Async in-memory storage adapter with optional size bound.

    Entries are kept in write order: every set moves its key to the back,
    including promotions of older entries from another tier. When the bound
    is exceeded the earliest-written fifth of the entries is dropped in one go.
    """

    def __init__(self, max_items: int | None = None) -> None:
        if max_items is not None and max_items <= 0:
            raise ValueError("max_items must be positive")
        self._cache: OrderedDict[str, CacheEntry[object]] = OrderedDict()
        self._max_items = max_items
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._cache)

    async def get(self, key: str) -> CacheEntry[object] | None:
        """Get a cache entry by key."""
        async with self._lock:
            return self._cache.get(key)

    async def set(self, key: str, entry: CacheEntry[object]) -> None:
        """Store a cache entry."""
        async with self._lock:
            self._cache[key] = entry
            self._cache.move_to_end(key)
            if self._max_items and len(self._cache) > self._max_items:
                self._evict_oldest()

    async def delete(self, key: str) -> bool:
        """Delete a cache entry."""
        async with self._lock:
            return self._cache.pop(key, None) is not None

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix."""
        async with self._lock:
            matching = [key for key in self._cache if key.startswith(prefix)]
            for key in matching:
                del self._cache[key]
            return len(matching)

    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix."""
        async with self._lock:
            return [key for key in self._cache if key.startswith(prefix)]

    async def clear(self) -> None:
        """Clear all cached entries."""
        async with self._lock:
            self._cache.clear()

    async def disconnect(self) -> None:
        """Disconnect from the storage backend (no-op for memory)."""
        pass

    def _evict_oldest(self) -> None:
        count = math.ceil(len(self._cache) * EVICTION_FRACTION)
        for _ in range(count):
            self._cache.popitem(last=False)
        logger.debug("Evicted %d oldest cache entries", count)
