"""Areas data source tests: fetching, caching, refresh and preload."""

from unittest.mock import AsyncMock

import httpx
import pytest

from portal.areas import Area
from portal.services.areas import (
    AREAS_PATH,
    AreasCache,
    fetch_areas,
    get_cached_areas,
    preload_areas,
    refresh_areas,
)
from portal.services.client import ApiResult
from portal.services.timed_cache import CacheSource, CacheState


def areas_handler(body, status=200):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, json=body)

    handler.calls = calls
    return handler


class TestFetchAreas:
    @pytest.mark.asyncio
    async def test_requests_areas_endpoint(self, make_context, raw_areas):
        handler = areas_handler({"success": True, "data": raw_areas})
        async with make_context(handler) as context:
            result = await fetch_areas(context.client)

        assert result.success is True
        assert handler.calls[0].method == "GET"
        assert handler.calls[0].url.path == AREAS_PATH


class TestGetCachedAreas:
    @pytest.mark.asyncio
    async def test_unwraps_envelope_and_normalizes_ids(self, make_context, raw_areas):
        handler = areas_handler({"success": True, "data": raw_areas})
        async with make_context(handler) as context:
            areas = await get_cached_areas(context)

        assert len(areas) == len(raw_areas)
        assert all(isinstance(area, Area) for area in areas)
        thames = next(a for a in areas if a.name == "Thames")
        assert thames.id == 2
        bath = next(a for a in areas if a.name == "Bath")
        assert (bath.id, bath.parent_id) == (101, 10)

    @pytest.mark.asyncio
    async def test_accepts_bare_list(self, make_context, raw_areas):
        handler = areas_handler(raw_areas)
        async with make_context(handler) as context:
            areas = await get_cached_areas(context)

        assert [a.id for a in areas][:3] == [1, 2, 10]

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, make_context, raw_areas):
        handler = areas_handler({"success": True, "data": raw_areas})
        async with make_context(handler) as context:
            first = await get_cached_areas(context)
            second = await get_cached_areas(context)

        assert len(handler.calls) == 1
        assert first == second
        assert context.areas_cache.state is CacheState.ACTIVE

    @pytest.mark.asyncio
    async def test_backend_failure_returns_none(self, make_context):
        handler = areas_handler({"errors": [{"errorCode": "NOT_FOUND"}]}, 404)
        async with make_context(handler) as context:
            areas = await get_cached_areas(context)

        assert areas is None
        assert len(handler.calls) == 1

    @pytest.mark.asyncio
    async def test_failure_is_retried_on_next_call(self, engine, raw_areas):
        cache = AreasCache(engine)
        fetch_fn = AsyncMock(
            side_effect=[
                ApiResult.network_error("down"),
                ApiResult.ok(200, {"success": True, "data": raw_areas}),
            ]
        )

        first = await cache.get_areas(fetch_fn)
        second = await cache.get_areas(fetch_fn)

        assert first.source is CacheSource.UNAVAILABLE
        assert second.source is CacheSource.FETCHED
        assert len(second.data) == len(raw_areas)

    @pytest.mark.asyncio
    async def test_non_list_payload_is_unavailable(self, make_context):
        handler = areas_handler({"success": True, "data": {"unexpected": 1}})
        async with make_context(handler) as context:
            areas = await get_cached_areas(context)

        assert areas is None

    @pytest.mark.asyncio
    async def test_custom_fetch_function(self, make_context, raw_areas):
        fetch_fn = AsyncMock(return_value=ApiResult.ok(200, raw_areas[:2]))
        async with make_context(areas_handler([])) as context:
            areas = await get_cached_areas(context, fetch_fn)

        fetch_fn.assert_awaited_once_with(context.client)
        assert [a.id for a in areas] == [1, 2]

    @pytest.mark.asyncio
    async def test_shared_engine_second_context_fetches_uncached(
        self, make_context, raw_areas
    ):
        handler = areas_handler({"success": True, "data": raw_areas})
        async with make_context(handler) as first:
            await get_cached_areas(first)
        async with make_context(handler) as second:
            await get_cached_areas(second)
            await get_cached_areas(second)

        assert second.areas_cache.state is CacheState.DISABLED
        assert len(handler.calls) == 3

    @pytest.mark.asyncio
    async def test_cache_disabled_by_settings(self, make_context, raw_areas):
        handler = areas_handler(raw_areas)
        async with make_context(handler, cache_enabled=False) as context:
            await get_cached_areas(context)
            await get_cached_areas(context)

        assert len(handler.calls) == 2


class TestRefreshAndPreload:
    @pytest.mark.asyncio
    async def test_refresh_refetches(self, make_context, raw_areas):
        handler = areas_handler(raw_areas)
        async with make_context(handler) as context:
            await get_cached_areas(context)
            areas = await refresh_areas(context)

        assert len(handler.calls) == 2
        assert len(areas) == len(raw_areas)

    @pytest.mark.asyncio
    async def test_preload_success(self, make_context, raw_areas):
        handler = areas_handler(raw_areas)
        async with make_context(handler) as context:
            assert await preload_areas(context) is True
            await get_cached_areas(context)

        assert len(handler.calls) == 1

    @pytest.mark.asyncio
    async def test_preload_failure_is_not_fatal(self, make_context):
        handler = areas_handler({"errors": []}, 400)
        async with make_context(handler) as context:
            assert await preload_areas(context) is False
