"""
Service layer infrastructure - resilient access to the backend API.

Provides:
- ApiClient: Retrying HTTP client returning normalized ApiResults
- CacheEngine: In-process segmented cache with TTL
- TimedCache: Lazily-provisioned cache with direct-fetch fallback
- AreasCache / AccountsCache: Per-resource caches
"""

from portal.services.errors import (
    ServiceError,
    CacheError,
    SegmentAlreadyProvisionedError,
)
from portal.services.client import (
    ApiClient,
    ApiResult,
    RETRYABLE_EXCEPTIONS,
    RETRYABLE_STATUS_CODES,
)
from portal.services.cache import (
    CacheEngine,
    CacheSegment,
    CachedItem,
    CacheStats,
    extract_payload,
)
from portal.services.timed_cache import (
    CacheOutcome,
    CacheSource,
    CacheState,
    TimedCache,
)
from portal.services.areas import (
    AreasCache,
    fetch_areas,
    get_cached_areas,
    preload_areas,
    refresh_areas,
)
from portal.services.accounts import (
    AccountsCache,
    AccountStatus,
    fetch_accounts,
    get_accounts_count,
    get_cached_accounts,
    invalidate_accounts,
    invalidate_accounts_by_status,
    invalidate_all_accounts,
    submit_account_request,
)

__all__ = [
    # Errors
    "ServiceError",
    "CacheError",
    "SegmentAlreadyProvisionedError",
    # Client
    "ApiClient",
    "ApiResult",
    "RETRYABLE_EXCEPTIONS",
    "RETRYABLE_STATUS_CODES",
    # Cache engine
    "CacheEngine",
    "CacheSegment",
    "CachedItem",
    "CacheStats",
    "extract_payload",
    # Timed cache
    "CacheOutcome",
    "CacheSource",
    "CacheState",
    "TimedCache",
    # Areas
    "AreasCache",
    "fetch_areas",
    "get_cached_areas",
    "preload_areas",
    "refresh_areas",
    # Accounts
    "AccountsCache",
    "AccountStatus",
    "fetch_accounts",
    "get_accounts_count",
    "get_cached_accounts",
    "invalidate_accounts",
    "invalidate_accounts_by_status",
    "invalidate_all_accounts",
    "submit_account_request",
]
