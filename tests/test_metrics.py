"""Tests for cache metrics."""

import pytest

from cachedquery import CacheMetrics


def test_record_counts_each_outcome_once() -> None:
    metrics = CacheMetrics()
    metrics.record(True, 10)
    metrics.record(False, 20)
    metrics.record(True, 30, error=True)

    assert metrics.hits == 1
    assert metrics.misses == 1
    assert metrics.errors == 1
    assert metrics.total_requests == 3


def test_running_average() -> None:
    metrics = CacheMetrics()
    for ms in (10, 20, 30, 40):
        metrics.record(False, ms)
    assert metrics.avg_response_time_ms == pytest.approx(25.0)


def test_hit_rate() -> None:
    metrics = CacheMetrics()
    assert metrics.hit_rate == 0.0
    metrics.record(True, 1)
    metrics.record(False, 1)
    assert metrics.hit_rate == 0.5


def test_reset_and_snapshot() -> None:
    metrics = CacheMetrics()
    metrics.record(True, 5)
    snapshot = metrics.snapshot()
    metrics.reset()

    assert metrics == CacheMetrics()
    assert snapshot.hits == 1
    assert snapshot.avg_response_time_ms == 5
