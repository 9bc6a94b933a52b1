"""
Application context - the services created once at startup and handed to
every request handler.
"""

from dataclasses import dataclass
from datetime import timedelta

import httpx
from loguru import logger

from portal.services.accounts import AccountsCache
from portal.services.areas import AreasCache
from portal.services.cache import CacheEngine
from portal.services.client import ApiClient
from portal.settings import Settings, global_settings


@dataclass
class AppContext:
    settings: Settings
    client: ApiClient
    cache_engine: CacheEngine
    areas_cache: AreasCache
    accounts_cache: AccountsCache

    async def close(self) -> None:
        """Release the HTTP client."""
        await self.client.close()
        logger.debug("AppContext closed")

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_app_context(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    engine: CacheEngine | None = None,
) -> AppContext:
    """
    Build the client and caches from settings.

    Passing an existing engine lets several contexts share one cache; a second
    context then finds its segments already provisioned and fetches uncached.
    """
    settings = settings or global_settings
    engine = engine or CacheEngine(debug=settings.cache_debug)

    context = AppContext(
        settings=settings,
        client=ApiClient.from_settings(settings, transport=transport),
        cache_engine=engine,
        areas_cache=AreasCache(
            engine,
            segment=settings.areas_cache_segment,
            ttl=timedelta(milliseconds=settings.areas_cache_ttl_ms),
            enabled=settings.cache_enabled,
        ),
        accounts_cache=AccountsCache(
            engine,
            segment=settings.accounts_cache_segment,
            ttl=timedelta(milliseconds=settings.accounts_cache_ttl_ms),
            enabled=settings.cache_enabled,
        ),
    )
    logger.debug(
        f"AppContext created (backend: {settings.backend_api_url}, "
        f"cache enabled: {settings.cache_enabled})"
    )
    return context
