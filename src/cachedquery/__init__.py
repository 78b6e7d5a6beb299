"""cachedquery - TTL cache for backend reads with offline stale fallback."""

# Adapters (async only)
from cachedquery.adapters import (
    AsyncMemoryAdapter,
    AsyncRedisAdapter,
    AsyncStorageAdapter,
)

# Duration parsing
from cachedquery.duration import parse_duration

# Keys
from cachedquery.keys import WILDCARD, is_pattern, make_key, pattern_prefix
from cachedquery.metrics import CacheMetrics

# Network
from cachedquery.network import (
    HttpNetworkProbe,
    NetworkProbe,
    NetworkUnavailableError,
    StaticNetworkProbe,
)

# Cache store
from cachedquery.store import QueryCache, create_query_cache

# Core types
from cachedquery.types import (
    CacheEntry,
    Duration,
    FetchResult,
    QueryResult,
    StalePolicy,
)

__version__ = "0.1.0"

__all__ = [
    "WILDCARD",
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
    "CacheEntry",
    "CacheMetrics",
    "Duration",
    "FetchResult",
    "HttpNetworkProbe",
    "NetworkProbe",
    "NetworkUnavailableError",
    "QueryCache",
    "QueryResult",
    "StalePolicy",
    "StaticNetworkProbe",
    "create_query_cache",
    "is_pattern",
    "make_key",
    "parse_duration",
    "pattern_prefix",
]
