"""Base adapter protocol for storage backends."""

from typing import Protocol, runtime_checkable

from cachedquery.types import CacheEntry


@runtime_checkable
class AsyncStorageAdapter(Protocol):
    """Async storage adapter interface."""

    async def get(self, key: str) -> CacheEntry[object] | None:
        """Get a cache entry by key, fresh or not."""
        ...

    async def set(self, key: str, entry: CacheEntry[object]) -> None:
        """Store a cache entry, replacing any entry under the same key."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete a cache entry. Returns whether one existed."""
        ...

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix. Returns the count."""
        ...

    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix."""
        ...

    async def clear(self) -> None:
        """Clear all cached entries."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from the storage backend."""
        ...
