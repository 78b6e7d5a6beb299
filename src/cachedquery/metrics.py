"""Cache performance counters."""

from dataclasses import dataclass, replace


@dataclass(slots=True)
class CacheMetrics:
    """Running hit/miss/error counts and mean response time."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    total_requests: int = 0
    avg_response_time_ms: float = 0.0

    def record(self, hit: bool, response_time_ms: float, error: bool = False) -> None:
        """Account one cached_query call. An error is never also a hit or miss."""
        if error:
            self.errors += 1
        elif hit:
            self.hits += 1
        else:
            self.misses += 1

        self.total_requests += 1
        self.avg_response_time_ms += (
            response_time_ms - self.avg_response_time_ms
        ) / self.total_requests

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.total_requests = 0
        self.avg_response_time_ms = 0.0

    @property
    def hit_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def snapshot(self) -> "CacheMetrics":
        return replace(self)
