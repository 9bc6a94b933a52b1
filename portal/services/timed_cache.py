"""
TimedCache - Lazily-provisioned, TTL-bounded cache in front of a fetch function.

Caching is an optimization only. Every failure of the cache engine falls back
to calling the fetch function directly, so callers never see a cache-layer
exception.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from loguru import logger

from portal.services.cache import CacheEngine, CacheSegment, extract_payload
from portal.services.client import ApiResult
from portal.services.errors import SegmentAlreadyProvisionedError

T = TypeVar("T")

FetchFn = Callable[[], Awaitable[ApiResult]]


class CacheState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    DISABLED = "disabled"


class CacheSource(str, Enum):
    CACHED = "cached"
    FETCHED = "fetched"
    UNAVAILABLE = "unavailable"


@dataclass
class CacheOutcome(Generic[T]):
    """Which path produced the data, and the data itself."""

    source: CacheSource
    data: T | None = None

    @property
    def from_cache(self) -> bool:
        return self.source is CacheSource.CACHED

    @property
    def available(self) -> bool:
        return self.source is not CacheSource.UNAVAILABLE


class TimedCache(Generic[T]):
    """
    Cache service for one backend resource, stored in one engine segment.

    Lifecycle: UNINITIALIZED -> ACTIVE on the first successful provisioning,
    or -> DISABLED when provisioning fails (or caching is switched off).
    A DISABLED cache fetches through on every call for the rest of the process.

    Subclasses override ``parse`` to turn a stored payload into typed data and
    ``payload_from_result`` to pick what gets stored from an ApiResult.
    """

    def __init__(
        self,
        engine: CacheEngine,
        segment: str,
        ttl: timedelta,
        enabled: bool = True,
    ):
        self._engine = engine
        self.segment_name = segment
        self.ttl = ttl
        self._segment: CacheSegment | None = None
        self._state = CacheState.UNINITIALIZED if enabled else CacheState.DISABLED

        if not enabled:
            logger.info(f"Caching disabled for segment '{segment}'")

    @property
    def state(self) -> CacheState:
        return self._state

    def provision(self) -> CacheState:
        """Provision the segment if this has not been attempted yet."""
        if self._state is not CacheState.UNINITIALIZED:
            return self._state

        try:
            self._segment = self._engine.provision(self.segment_name, self.ttl)
            self._state = CacheState.ACTIVE
            logger.debug(
                f"Cache segment '{self.segment_name}' provisioned "
                f"(TTL: {self.ttl.total_seconds()}s)"
            )
        except SegmentAlreadyProvisionedError:
            self._state = CacheState.DISABLED
            logger.warning(
                f"Cache segment '{self.segment_name}' already provisioned, "
                "fetching without cache"
            )
        except Exception as e:
            self._state = CacheState.DISABLED
            logger.error(
                f"Failed to provision cache segment '{self.segment_name}': {e}, "
                "fetching without cache"
            )

        return self._state

    async def get_cached(self, key: str, fetch_fn: FetchFn) -> CacheOutcome[T]:
        """
        Return cached data for key, or fetch, store and return it.

        Args:
            key: Cache key within the segment
            fetch_fn: Async callable returning an ApiResult

        Returns:
            CacheOutcome telling whether data came from the cache, a fetch,
            or is unavailable
        """
        if self.provision() is CacheState.DISABLED:
            return await self._fetch_direct(fetch_fn)

        try:
            cached = await self._segment.get(key)
            data = self.parse(extract_payload(cached))
        except Exception as e:
            logger.error(
                f"Cache read failed for {self.segment_name}/{key}: {e}, "
                "falling back to direct fetch"
            )
            return await self._fetch_direct(fetch_fn)

        if data is not None:
            logger.debug(f"Cache hit: {self.segment_name}/{key}")
            return CacheOutcome(CacheSource.CACHED, data)

        logger.debug(f"Cache miss: {self.segment_name}/{key}")
        result = await self._fetch(fetch_fn)
        if result is None or not result.success:
            return CacheOutcome(CacheSource.UNAVAILABLE)

        payload = self.payload_from_result(result)
        data = self.parse(payload)
        if data is None:
            logger.warning(
                f"Unusable payload for {self.segment_name}/{key}, not caching"
            )
            return CacheOutcome(CacheSource.UNAVAILABLE)

        try:
            await self._segment.set(key, payload, self.ttl)
        except Exception as e:
            logger.error(f"Cache write failed for {self.segment_name}/{key}: {e}")

        return CacheOutcome(CacheSource.FETCHED, data)

    async def invalidate(self, key: str) -> bool:
        """Drop a key. Best effort, never raises."""
        if self._state is not CacheState.ACTIVE:
            logger.debug(f"Cache not active, skipping invalidate of {key}")
            return False

        try:
            dropped = await self._segment.drop(key)
            logger.info(f"Invalidated cache {self.segment_name}/{key}")
            return dropped
        except Exception as e:
            logger.error(f"Failed to invalidate {self.segment_name}/{key}: {e}")
            return False

    async def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix. Best effort, never raises."""
        if self._state is not CacheState.ACTIVE:
            logger.debug(f"Cache not active, skipping invalidate of {prefix}*")
            return 0

        try:
            dropped = await self._segment.drop_prefix(prefix)
            logger.info(
                f"Invalidated {dropped} entries of {self.segment_name}/{prefix}*"
            )
            return dropped
        except Exception as e:
            logger.error(f"Failed to invalidate {self.segment_name}/{prefix}*: {e}")
            return 0

    async def invalidate_all(self) -> int:
        """Drop every key of the segment. Best effort, never raises."""
        if self._state is not CacheState.ACTIVE:
            logger.debug(f"Cache not active, skipping clear of {self.segment_name}")
            return 0

        try:
            dropped = await self._segment.clear()
            logger.info(f"Invalidated all {dropped} entries of {self.segment_name}")
            return dropped
        except Exception as e:
            logger.error(f"Failed to clear {self.segment_name}: {e}")
            return 0

    def parse(self, payload: Any) -> T | None:
        """Convert a stored payload into typed data. None means miss."""
        return payload

    def payload_from_result(self, result: ApiResult) -> Any:
        """Pick the value to store from a successful result."""
        return result.data

    async def _fetch(self, fetch_fn: FetchFn) -> ApiResult | None:
        """Await fetch_fn, logging failures. None when it raised."""
        # Calling a non-callable is a programming error and propagates
        pending = fetch_fn()
        try:
            result = await pending
        except Exception as e:
            logger.error(f"Fetch for {self.segment_name} raised: {e}")
            return None

        if not result.success:
            logger.warning(
                f"Fetch for {self.segment_name} failed "
                f"(status {result.status}, {result.error_code})"
            )
        return result

    async def _fetch_direct(self, fetch_fn: FetchFn) -> CacheOutcome[T]:
        result = await self._fetch(fetch_fn)
        if result is None or not result.success:
            return CacheOutcome(CacheSource.UNAVAILABLE)

        data = self.parse(self.payload_from_result(result))
        if data is None:
            return CacheOutcome(CacheSource.UNAVAILABLE)
        return CacheOutcome(CacheSource.FETCHED, data)
