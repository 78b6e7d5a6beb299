"""Redis storage adapter, used as the persistent cache tier."""

from __future__ import annotations

import json
from typing import Any

from cachedquery.types import CacheEntry


def _serialize_entry(entry: CacheEntry[object]) -> str:
    """Serialize a cache entry to JSON."""
    return json.dumps(
        {
            "key": entry.key,
            "value": entry.value,
            "stored_at": entry.stored_at,
            "ttl_ms": entry.ttl_ms,
            "critical": entry.critical,
        }
    )


def _deserialize_entry(data: bytes | str) -> CacheEntry[object]:
    """Deserialize JSON to a cache entry."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    obj = json.loads(data)
    return CacheEntry(
        key=obj["key"],
        value=obj["value"],
        stored_at=obj["stored_at"],
        ttl_ms=obj["ttl_ms"],
        critical=obj.get("critical", False),
    )


class AsyncRedisAdapter:
    """Async Redis storage adapter.

    Entries are written without a Redis expiry: a stale entry must outlive
    its TTL so it can be served when the backend is unreachable.
    """

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "cachedquery",
        scan_count: int = 100,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._scan_count = scan_count

    def _entry_key(self, key: str) -> str:
        """Generate full Redis key for cache entries."""
        return f"{self._prefix}:entry:{key}"

    def _strip(self, redis_key: bytes | str) -> str:
        if isinstance(redis_key, bytes):
            redis_key = redis_key.decode("utf-8")
        return redis_key[len(self._entry_key("")) :]

    async def _scan(self, prefix: str) -> list[bytes | str]:
        """Collect Redis keys for entries whose key starts with prefix."""
        pattern = self._entry_key(_escape_glob(prefix)) + "*"
        found: list[bytes | str] = []
        cursor: int = 0
        while True:
            result = await self._client.scan(
                cursor, match=pattern, count=self._scan_count
            )
            cursor = result[0]
            found.extend(result[1])
            if cursor == 0:
                break
        return found

    async def get(self, key: str) -> CacheEntry[object] | None:
        """Get a cache entry by key."""
        data = await self._client.get(self._entry_key(key))
        if data is None:
            return None
        return _deserialize_entry(data)

    async def set(self, key: str, entry: CacheEntry[object]) -> None:
        """Store a cache entry."""
        await self._client.set(self._entry_key(key), _serialize_entry(entry))

    async def delete(self, key: str) -> bool:
        """Delete a cache entry."""
        removed = await self._client.delete(self._entry_key(key))
        return bool(removed)

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix."""
        keys = await self._scan(prefix)
        if not keys:
            return 0
        return int(await self._client.delete(*keys))

    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix."""
        return [self._strip(k) for k in await self._scan(prefix)]

    async def clear(self) -> None:
        """Clear all cached entries under this adapter's prefix."""
        await self.delete_prefix("")

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()


def _escape_glob(text: str) -> str:
    """Escape Redis MATCH metacharacters so a key prefix matches literally."""
    for char in ("\\", "*", "?", "[", "]"):
        text = text.replace(char, "\\" + char)
    return text
