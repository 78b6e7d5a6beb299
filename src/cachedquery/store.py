"""QueryCache - time-bounded cache in front of backend reads.

This module provides the cached query layer:
- cached_query(): TTL-cached fetch with offline-aware stale fallback
- clear_cache(): Exact-key or trailing-wildcard invalidation
- is_network_available(): On-demand reachability check, fail-open by default
- query / mutation: Decorators for read and write functions
- metrics, clear_all(), disconnect(): Housekeeping and lifecycle

A QueryCache is an explicit object. Create one at application start, pass
it to the data-fetch functions that need it, and disconnect it at shutdown.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from functools import wraps
from typing import Any, TypeVar

from cachedquery.adapters.base import AsyncStorageAdapter
from cachedquery.adapters.memory import AsyncMemoryAdapter
from cachedquery.duration import parse_duration
from cachedquery.keys import is_pattern, pattern_prefix
from cachedquery.metrics import CacheMetrics
from cachedquery.network import NetworkProbe, NetworkUnavailableError
from cachedquery.types import (
    CacheEntry,
    Duration,
    FetchResult,
    QueryResult,
    StalePolicy,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "cache_"
DEFAULT_TTL: Duration = "10m"
DEFAULT_MAX_ITEMS = 300

# (full key, critical_data, persist, ttl_ms): reads share a fetch only when all match
_FlightKey = tuple[str, bool, bool, int]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


def _as_fetch_result(result: Any) -> FetchResult[Any]:
    """Treat anything a fetch returns that is not a FetchResult as plain data."""
    if isinstance(result, FetchResult):
        return result
    return FetchResult(data=result)


class QueryCache:
    """Cache store for backend reads.

    Usage:
        cache = create_query_cache(probe=HttpNetworkProbe())
        result = await cache.cached_query(
            fetch_company, "company_details_42", cache_ttl="10m", critical_data=True
        )
        if result.stale:
            show_warning("Viewing cached data")
        await cache.clear_cache("companies_*")
    """

    def __init__(
        self,
        *,
        adapter: AsyncStorageAdapter | None = None,
        persistent: AsyncStorageAdapter | None = None,
        probe: NetworkProbe | None = None,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: Duration = DEFAULT_TTL,
        stale_on_error: StalePolicy | str = StalePolicy.CRITICAL,
        assume_online_on_probe_error: bool = True,
        coalesce: bool = False,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._adapter: AsyncStorageAdapter = (
            adapter
            if adapter is not None
            else AsyncMemoryAdapter(max_items=DEFAULT_MAX_ITEMS)
        )
        self._persistent = persistent
        self._probe = probe
        self._prefix = prefix
        self._default_ttl = parse_duration(default_ttl)
        self._stale_policy = StalePolicy(stale_on_error)
        self._assume_online_on_probe_error = assume_online_on_probe_error
        self._coalesce = coalesce
        self._clock = clock
        self._metrics = CacheMetrics()
        self._in_flight: dict[_FlightKey, asyncio.Task[QueryResult[Any]]] = {}

    async def __aenter__(self) -> QueryCache:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    @property
    def stale_policy(self) -> StalePolicy:
        return self._stale_policy

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def cached_query(
        self,
        fetch_fn: Callable[[], Awaitable[Any]],
        key: str,
        *,
        force_refresh: bool = False,
        cache_ttl: Duration | None = None,
        critical_data: bool = False,
        persist: bool = True,
    ) -> QueryResult[Any]:
        """Fetch through the cache.

        Args:
            fetch_fn: Zero-argument coroutine function doing the backend read.
                Returns a FetchResult (or plain data) and may raise.
            key: Cache key; must embed every parameter the read depends on.
            force_refresh: Skip the cache lookup and always call fetch_fn.
            cache_ttl: Time to live for a freshly stored entry.
            critical_data: Allow a stale entry to stand in for a failed read.
            persist: Also read from and write to the persistent tier.

        Returns:
            QueryResult. Failures are returned in ``error``, never raised.
        """
        if not key:
            raise ValueError("Cache key must not be empty")
        if is_pattern(key):
            raise ValueError(f"Cannot query with a wildcard key: {key!r}")

        full_key = self._full_key(key)
        ttl_ms = self._default_ttl if cache_ttl is None else parse_duration(cache_ttl)

        async def run() -> QueryResult[Any]:
            return await self._run_query(
                fetch_fn,
                full_key,
                ttl_ms=ttl_ms,
                force_refresh=force_refresh,
                critical_data=critical_data,
                persist=persist,
            )

        # A forced refresh must reach fetch_fn, so it never joins another call
        if not self._coalesce or force_refresh:
            return await run()
        return await self._join_in_flight(
            (full_key, critical_data, persist, ttl_ms), run
        )

    async def is_network_available(self) -> bool:
        """Check reachability now. Probe failures resolve to the configured default."""
        if self._probe is None:
            return True
        try:
            return await self._probe.is_available()
        except Exception:
            logger.warning(
                "Network probe failed, assuming %s",
                "online" if self._assume_online_on_probe_error else "offline",
                exc_info=True,
            )
            return self._assume_online_on_probe_error

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    async def clear_cache(self, key_or_pattern: str) -> int:
        """Remove one key, or every key sharing the prefix before a trailing ``*``.

        Returns the number of in-memory entries removed. Nothing matching is
        not an error, and neither is a storage tier that fails: the failure
        is logged and that tier counts as having removed nothing.
        """
        removed = 0
        for tier, adapter in self._tiers():
            count = await self._tier_delete(tier, adapter, key_or_pattern)
            if adapter is self._adapter:
                removed = count

        logger.debug("Cleared %d cache entries for %s", removed, key_or_pattern)
        return removed

    async def clear_all(self) -> None:
        """Clear every tier. Failing tiers are logged and skipped."""
        for tier, adapter in self._tiers():
            try:
                await adapter.clear()
            except Exception:
                logger.warning("Failed to clear %s cache", tier, exc_info=True)

    # -------------------------------------------------------------------------
    # Decorators
    # -------------------------------------------------------------------------

    def query(
        self,
        *,
        key: str | Callable[..., str],
        ttl: Duration | None = None,
        critical: bool = False,
        persist: bool = True,
    ) -> Callable[
        [Callable[..., Awaitable[Any]]], Callable[..., Awaitable[QueryResult[Any]]]
    ]:
        """Decorator that routes an async read through cached_query.

        Usage:
            @cache.query(key=lambda company_id: make_key("company_details", company_id),
                         ttl="10m", critical=True)
            async def get_company(company_id: str) -> FetchResult[dict]:
                ...

            result = await get_company("abc")
            result = await get_company("abc", force_refresh=True)
        """

        def decorator(
            fn: Callable[..., Awaitable[Any]],
        ) -> Callable[..., Awaitable[QueryResult[Any]]]:
            @wraps(fn)
            async def wrapper(
                *args: Any, force_refresh: bool = False, **kwargs: Any
            ) -> QueryResult[Any]:
                cache_key = key(*args, **kwargs) if callable(key) else key
                return await self.cached_query(
                    lambda: fn(*args, **kwargs),
                    cache_key,
                    force_refresh=force_refresh,
                    cache_ttl=ttl,
                    critical_data=critical,
                    persist=persist,
                )

            return wrapper

        return decorator

    def mutation(
        self,
        *,
        invalidates: str | Iterable[str] | Callable[..., str | Iterable[str]],
    ) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
        """Decorator that runs a write, then clears the keys/patterns it affects.

        A write that raises, or returns a FetchResult carrying an error,
        invalidates nothing.

        Usage:
            @cache.mutation(invalidates=lambda company_id, _: [
                make_key("company_details", company_id), "companies_*",
            ])
            async def update_company(company_id: str, changes: dict) -> FetchResult[dict]:
                ...
        """

        def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
            @wraps(fn)
            async def wrapper(*args: Any, **kwargs: Any) -> T:
                result = await fn(*args, **kwargs)
                if isinstance(result, FetchResult) and result.error is not None:
                    return result

                targets = (
                    invalidates(*args, **kwargs) if callable(invalidates) else invalidates
                )
                if isinstance(targets, str):
                    targets = [targets]
                for target in targets:
                    await self.clear_cache(target)
                return result

            return wrapper

        return decorator

    # -------------------------------------------------------------------------
    # Metrics and lifecycle
    # -------------------------------------------------------------------------

    def get_metrics(self) -> CacheMetrics:
        """Snapshot of the performance counters."""
        return self._metrics.snapshot()

    def reset_metrics(self) -> None:
        self._metrics.reset()

    async def disconnect(self) -> None:
        """Disconnect storage tiers and the network probe."""
        await self._adapter.disconnect()
        if self._persistent is not None:
            await self._persistent.disconnect()
        if self._probe is not None:
            await self._probe.aclose()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _allows_stale(self, critical_data: bool) -> bool:
        if self._stale_policy is StalePolicy.ALWAYS:
            return True
        if self._stale_policy is StalePolicy.NEVER:
            return False
        return critical_data

    async def _run_query(
        self,
        fetch_fn: Callable[[], Awaitable[Any]],
        full_key: str,
        *,
        ttl_ms: int,
        force_refresh: bool,
        critical_data: bool,
        persist: bool,
    ) -> QueryResult[Any]:
        started = time.monotonic()

        if not force_refresh:
            entry = await self._lookup_fresh(full_key, persist)
            if entry is not None:
                logger.debug("Cache hit for %s", full_key)
                self._metrics.record(True, _elapsed_ms(started))
                return QueryResult(entry.value, None, from_cache=True)

        error: Any
        if not await self.is_network_available():
            error = NetworkUnavailableError()
        else:
            try:
                result = _as_fetch_result(await fetch_fn())
            except Exception as exc:
                error = exc
            else:
                error = result.error
                if error is None:
                    if result.data is not None:
                        await self._store(
                            full_key, result.data, ttl_ms, critical_data, persist
                        )
                    logger.debug("Cache miss for %s, stored fresh data", full_key)
                    self._metrics.record(False, _elapsed_ms(started))
                    return QueryResult(result.data, None, from_cache=False)

        self._metrics.record(False, _elapsed_ms(started), error=True)

        if self._allows_stale(critical_data):
            entry = await self._lookup_any(full_key, persist)
            if entry is not None:
                logger.warning(
                    "Serving stale cache for %s (age %dms): %s",
                    full_key,
                    entry.age(self._clock()),
                    error,
                )
                return QueryResult(entry.value, error, from_cache=True)

        logger.warning("Query for %s failed: %s", full_key, error)
        return QueryResult(None, error, from_cache=False)

    def _tiers(self) -> list[tuple[str, AsyncStorageAdapter]]:
        tiers: list[tuple[str, AsyncStorageAdapter]] = [("memory", self._adapter)]
        if self._persistent is not None:
            tiers.append(("persistent", self._persistent))
        return tiers

    async def _tier_get(
        self, tier: str, adapter: AsyncStorageAdapter, full_key: str
    ) -> CacheEntry[object] | None:
        try:
            return await adapter.get(full_key)
        except Exception:
            logger.warning(
                "Failed to read %s cache for %s", tier, full_key, exc_info=True
            )
            return None

    async def _tier_set(
        self,
        tier: str,
        adapter: AsyncStorageAdapter,
        full_key: str,
        entry: CacheEntry[object],
    ) -> None:
        try:
            await adapter.set(full_key, entry)
        except Exception:
            logger.warning(
                "Failed to write %s cache for %s", tier, full_key, exc_info=True
            )

    async def _tier_delete(
        self, tier: str, adapter: AsyncStorageAdapter, key_or_pattern: str
    ) -> int:
        try:
            if is_pattern(key_or_pattern):
                prefix = self._full_key(pattern_prefix(key_or_pattern))
                return await adapter.delete_prefix(prefix)
            return int(await adapter.delete(self._full_key(key_or_pattern)))
        except Exception:
            logger.warning(
                "Failed to clear %s cache for %s", tier, key_or_pattern, exc_info=True
            )
            return 0

    async def _lookup_fresh(
        self, full_key: str, persist: bool
    ) -> CacheEntry[object] | None:
        now = self._clock()
        entry = await self._tier_get("memory", self._adapter, full_key)
        if entry is not None and entry.is_fresh(now):
            return entry

        if not persist:
            return None
        stored = await self._persistent_get(full_key)
        if stored is not None and stored.is_fresh(now):
            # Promote so the next read is served from memory
            await self._tier_set("memory", self._adapter, full_key, stored)
            return stored
        return None

    async def _lookup_any(
        self, full_key: str, persist: bool
    ) -> CacheEntry[object] | None:
        entry = await self._tier_get("memory", self._adapter, full_key)
        if entry is not None:
            return entry
        if not persist:
            return None
        return await self._persistent_get(full_key)

    async def _persistent_get(self, full_key: str) -> CacheEntry[object] | None:
        if self._persistent is None:
            return None
        return await self._tier_get("persistent", self._persistent, full_key)

    async def _store(
        self,
        full_key: str,
        value: Any,
        ttl_ms: int,
        critical: bool,
        persist: bool,
    ) -> None:
        entry: CacheEntry[object] = CacheEntry(
            key=full_key,
            value=value,
            stored_at=self._clock(),
            ttl_ms=ttl_ms,
            critical=critical,
        )
        await self._tier_set("memory", self._adapter, full_key, entry)

        if persist and self._persistent is not None:
            await self._tier_set("persistent", self._persistent, full_key, entry)

    async def _join_in_flight(
        self,
        flight_key: _FlightKey,
        run: Callable[[], Awaitable[QueryResult[Any]]],
    ) -> QueryResult[Any]:
        """Coalesce concurrent reads with identical options onto one fetch."""
        task = self._in_flight.get(flight_key)
        if task is None:
            task = asyncio.ensure_future(run())
            self._in_flight[flight_key] = task

            def _forget(done: asyncio.Task[QueryResult[Any]]) -> None:
                if self._in_flight.get(flight_key) is done:
                    del self._in_flight[flight_key]

            task.add_done_callback(_forget)
        else:
            logger.debug("Joining in-flight fetch for %s", flight_key[0])

        # Shielded so one cancelled caller does not cancel the shared fetch
        return await asyncio.shield(task)


def create_query_cache(
    *,
    adapter: AsyncStorageAdapter | None = None,
    persistent: AsyncStorageAdapter | None = None,
    probe: NetworkProbe | None = None,
    prefix: str = DEFAULT_PREFIX,
    default_ttl: Duration = DEFAULT_TTL,
    max_items: int | None = DEFAULT_MAX_ITEMS,
    stale_on_error: StalePolicy | str = StalePolicy.CRITICAL,
    assume_online_on_probe_error: bool = True,
    coalesce: bool = False,
    clock: Callable[[], int] = _now_ms,
) -> QueryCache:
    """Create a cache store.

    Args:
        adapter: In-memory tier (default: AsyncMemoryAdapter bounded by max_items)
        persistent: Optional second tier that survives restarts
        probe: Network reachability probe (default: always online)
        prefix: Prepended to every cache key
        default_ttl: Time to live when a read does not pass cache_ttl
        max_items: Bound for the default memory adapter (None for unbounded)
        stale_on_error: Which reads may fall back to stale data
        assume_online_on_probe_error: Answer used when the probe itself fails
        coalesce: Share one in-flight fetch between concurrent reads of a key
        clock: Millisecond wall clock

    Returns:
        QueryCache with cached_query, clear_cache, is_network_available
    """
    if adapter is None:
        adapter = AsyncMemoryAdapter(max_items=max_items)

    return QueryCache(
        adapter=adapter,
        persistent=persistent,
        probe=probe,
        prefix=prefix,
        default_ttl=default_ttl,
        stale_on_error=stale_on_error,
        assume_online_on_probe_error=assume_online_on_probe_error,
        coalesce=coalesce,
        clock=clock,
    )


__all__ = ["QueryCache", "create_query_cache"]
