"""
Areas data source - fetch and cache the EA Area / PSO Area / RMA list.

Route handlers only call ``get_cached_areas`` and treat None as "no data
available".
"""

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from loguru import logger

from portal.areas.models import Area, parse_areas
from portal.services.cache import CacheEngine
from portal.services.client import ApiClient, ApiResult
from portal.services.timed_cache import CacheOutcome, TimedCache

if TYPE_CHECKING:
    from portal.context import AppContext

AREAS_PATH = "/api/v1/areas"
AREAS_CACHE_KEY = "areas"

AreasFetcher = Callable[[ApiClient], Awaitable[ApiResult]]


async def fetch_areas(client: ApiClient) -> ApiResult:
    """Fetch the full area list from the backend."""
    return await client.request(AREAS_PATH, method="GET")


def _unwrap_envelope(payload: Any) -> Any:
    # The backend wraps the list as {"success": true, "data": [...]}
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class AreasCache(TimedCache[list[Area]]):
    """
    Single-entry cache for the full area list.

    Usage:
        cache = AreasCache(engine, ttl=timedelta(hours=1))
        outcome = await cache.get_areas(lambda: fetch_areas(client))
        if outcome.available:
            areas = outcome.data
    """

    def __init__(
        self,
        engine: CacheEngine,
        segment: str = "areas",
        ttl: timedelta = timedelta(hours=1),
        enabled: bool = True,
    ):
        super().__init__(engine, segment, ttl, enabled=enabled)

    def parse(self, payload: Any) -> list[Area] | None:
        raw = _unwrap_envelope(payload)
        if not isinstance(raw, list):
            return None
        return parse_areas(raw)

    def payload_from_result(self, result: ApiResult) -> Any:
        return _unwrap_envelope(result.data)

    async def get_areas(
        self, fetch_fn: Callable[[], Awaitable[ApiResult]]
    ) -> CacheOutcome[list[Area]]:
        return await self.get_cached(AREAS_CACHE_KEY, fetch_fn)

    async def invalidate_areas(self) -> bool:
        return await self.invalidate(AREAS_CACHE_KEY)


async def get_cached_areas(
    context: "AppContext", fetch_fn: AreasFetcher = fetch_areas
) -> list[Area] | None:
    """
    Get the area list through the cache.

    Returns:
        The areas, or None when neither the cache nor the backend has them
    """
    outcome = await context.areas_cache.get_areas(lambda: fetch_fn(context.client))
    if not outcome.available:
        logger.warning("Areas unavailable from cache and backend")
        return None

    logger.debug(f"Areas {outcome.source.value}: {len(outcome.data)} area(s)")
    return outcome.data


async def refresh_areas(
    context: "AppContext", fetch_fn: AreasFetcher = fetch_areas
) -> list[Area] | None:
    """Drop the cached list and fetch it again."""
    logger.info("Refreshing areas cache")
    await context.areas_cache.invalidate_areas()
    return await get_cached_areas(context, fetch_fn)


async def preload_areas(
    context: "AppContext", fetch_fn: AreasFetcher = fetch_areas
) -> bool:
    """
    Warm the areas cache at startup.

    A failed preload is not fatal: the cache is filled on the first request.
    """
    logger.info("Preloading areas into cache")
    areas = await get_cached_areas(context, fetch_fn)
    if areas is None:
        logger.warning("Failed to preload areas - will retry on first request")
        return False

    logger.info(f"Areas preloaded successfully ({len(areas)} areas)")
    return True
