"""Tests for the query and mutation decorators."""

from typing import Any

import pytest

from cachedquery import FetchResult, QueryCache, QueryResult, make_key


class TestQueryDecorator:
    async def test_wraps_fetch_in_cached_query(self, cache: QueryCache) -> None:
        calls: list[str] = []

        @cache.query(key=lambda company_id: make_key("company_details", company_id))
        async def get_company(company_id: str) -> FetchResult[dict]:
            calls.append(company_id)
            return FetchResult(data={"id": company_id})

        first = await get_company("abc")
        second = await get_company("abc")
        other = await get_company("xyz")

        assert isinstance(first, QueryResult)
        assert first.data == {"id": "abc"}
        assert second.from_cache is True
        assert other.data == {"id": "xyz"}
        assert calls == ["abc", "xyz"]

    async def test_force_refresh_keyword(self, cache: QueryCache) -> None:
        calls = 0

        @cache.query(key="dashboard_stats", ttl="5m")
        async def get_stats() -> FetchResult[int]:
            nonlocal calls
            calls += 1
            return FetchResult(data=calls)

        await get_stats()
        result = await get_stats(force_refresh=True)

        assert result.data == 2
        assert result.from_cache is False

    async def test_keyword_arguments_reach_key_and_fetch(
        self, cache: QueryCache
    ) -> None:
        @cache.query(
            key=lambda company_id, page=1: make_key("employees", company_id, page)
        )
        async def list_employees(company_id: str, page: int = 1) -> FetchResult[Any]:
            return FetchResult(data={"company": company_id, "page": page})

        result = await list_employees("c1", page=3)
        assert result.data == {"company": "c1", "page": 3}

    async def test_critical_flag_enables_stale_fallback(
        self, cache: QueryCache, clock: Any
    ) -> None:
        fail = False

        @cache.query(key="company_details_1", ttl="1m", critical=True)
        async def get_company() -> FetchResult[str]:
            if fail:
                raise ConnectionError("down")
            return FetchResult(data="acme")

        await get_company()
        clock.advance(120_000)
        fail = True

        result = await get_company()
        assert result.stale
        assert result.data == "acme"

    async def test_preserves_function_metadata(self, cache: QueryCache) -> None:
        @cache.query(key="k")
        async def load_thing() -> FetchResult[int]:
            """Load a thing."""
            return FetchResult(data=1)

        assert load_thing.__name__ == "load_thing"
        assert load_thing.__doc__ == "Load a thing."


class TestMutationDecorator:
    async def _warm(self, cache: QueryCache, *keys: str) -> None:
        for key in keys:

            async def fetch() -> FetchResult[str]:
                return FetchResult(data="v")

            await cache.cached_query(fetch, key)

    async def test_invalidates_after_write(
        self, cache: QueryCache, async_adapter: Any
    ) -> None:
        await self._warm(cache, "company_details_42", "companies_1", "companies_2")

        @cache.mutation(
            invalidates=lambda company_id, changes: [
                make_key("company_details", company_id),
                "companies_*",
            ]
        )
        async def update_company(company_id: str, changes: dict) -> FetchResult[dict]:
            return FetchResult(data={"id": company_id, **changes})

        result = await update_company("42", {"active": False})

        assert result.data == {"id": "42", "active": False}
        assert await async_adapter.keys() == []

    async def test_static_single_key(self, cache: QueryCache, async_adapter: Any) -> None:
        await self._warm(cache, "companies_1", "company_details_1")

        @cache.mutation(invalidates="companies_*")
        async def create_company(name: str) -> str:
            return name

        assert await create_company("Acme") == "Acme"
        assert await async_adapter.keys() == ["cache_company_details_1"]

    async def test_failed_write_invalidates_nothing(
        self, cache: QueryCache, async_adapter: Any
    ) -> None:
        await self._warm(cache, "companies_1")

        @cache.mutation(invalidates=["companies_*"])
        async def returns_error() -> FetchResult[None]:
            return FetchResult(data=None, error={"message": "denied"})

        @cache.mutation(invalidates=["companies_*"])
        async def raises() -> None:
            raise PermissionError("denied")

        result = await returns_error()
        assert result.error == {"message": "denied"}
        with pytest.raises(PermissionError):
            await raises()

        assert await async_adapter.keys() == ["cache_companies_1"]
