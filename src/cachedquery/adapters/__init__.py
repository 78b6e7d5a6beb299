"""Storage adapters for the cachedquery library (async only)."""

from cachedquery.adapters.base import AsyncStorageAdapter
from cachedquery.adapters.memory import AsyncMemoryAdapter
from cachedquery.adapters.redis import AsyncRedisAdapter

__all__ = [
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
]
