"""Shared pytest fixtures."""

import pytest

from cachedquery import (
    AsyncMemoryAdapter,
    QueryCache,
    StaticNetworkProbe,
    create_query_cache,
)

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def async_adapter() -> AsyncMemoryAdapter:
    """Create a fresh AsyncMemoryAdapter for each test."""
    return AsyncMemoryAdapter()


@pytest.fixture
def probe() -> StaticNetworkProbe:
    """Network probe that reports online until a test says otherwise."""
    return StaticNetworkProbe(available=True)


@pytest.fixture
def cache(
    async_adapter: AsyncMemoryAdapter, probe: StaticNetworkProbe, clock: FakeClock
) -> QueryCache:
    """Create a fresh cache store for each test."""
    return create_query_cache(
        adapter=async_adapter, probe=probe, clock=clock, default_ttl="10m"
    )
