"""Tests for package exports."""


def test_public_api_available() -> None:
    """Test that the public API is importable from the package root."""
    from cachedquery import (
        AsyncMemoryAdapter,
        AsyncRedisAdapter,
        CacheEntry,
        FetchResult,
        HttpNetworkProbe,
        QueryCache,
        QueryResult,
        StalePolicy,
        create_query_cache,
        make_key,
        parse_duration,
    )

    # Just verify they're importable
    assert AsyncMemoryAdapter is not None
    assert AsyncRedisAdapter is not None
    assert CacheEntry is not None
    assert FetchResult is not None
    assert HttpNetworkProbe is not None
    assert QueryCache is not None
    assert QueryResult is not None
    assert StalePolicy is not None
    assert create_query_cache is not None
    assert make_key is not None
    assert parse_duration is not None


def test_all_names_resolve() -> None:
    import cachedquery

    for name in cachedquery.__all__:
        assert hasattr(cachedquery, name), name


def test_adapters_subpackage_exports_match_root() -> None:
    import cachedquery
    from cachedquery import adapters

    assert adapters.AsyncRedisAdapter is cachedquery.AsyncRedisAdapter
    assert "AsyncRedisAdapter" in cachedquery.__all__
