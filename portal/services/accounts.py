"""
Accounts data source - account listings for the admin pages and account
request submission.
"""

from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from loguru import logger

from portal.services.cache import CacheEngine
from portal.services.client import ApiClient, ApiResult
from portal.services.timed_cache import TimedCache

if TYPE_CHECKING:
    from portal.context import AppContext

ACCOUNTS_PATH = "/api/v1/accounts"
ACCOUNT_REQUEST_PATH = "/api/v1/account-request"


class AccountStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"


def _status_value(status: str) -> str:
    return status.value if isinstance(status, Enum) else str(status)


async def fetch_accounts(
    client: ApiClient,
    status: str,
    search: str | None = None,
    area_id: int | str | None = None,
    page: int = 1,
    page_size: int = 20,
    access_token: str | None = None,
) -> ApiResult:
    """Fetch one page of accounts with the given status."""
    params: dict[str, Any] = {
        "status": _status_value(status),
        "page": page,
        "pageSize": page_size,
    }
    if search and search.strip():
        params["search"] = search.strip()
    if area_id:
        params["areaId"] = area_id

    headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
    return await client.request(
        f"{ACCOUNTS_PATH}?{urlencode(params)}", method="GET", headers=headers
    )


async def submit_account_request(
    client: ApiClient, payload: dict[str, Any]
) -> ApiResult:
    """Submit a prepared account request."""
    result = await client.request(
        ACCOUNT_REQUEST_PATH, method="POST", json_data=payload
    )
    if result.success:
        logger.info("Account request submitted")
    else:
        logger.warning(
            f"Account request rejected (status {result.status}, {result.error_code})"
        )
    return result


class AccountsCache(TimedCache[dict[str, Any]]):
    """Cache of account listing responses keyed by query."""

    def __init__(
        self,
        engine: CacheEngine,
        segment: str = "accounts",
        ttl: timedelta = timedelta(minutes=5),
        enabled: bool = True,
    ):
        super().__init__(engine, segment, ttl, enabled=enabled)

    @staticmethod
    def generate_key(
        status: str,
        search: str | None = None,
        area_id: int | str | None = None,
        page: int = 1,
    ) -> str:
        return f"{_status_value(status)}:{search or ''}:{area_id or ''}:{page}"

    def parse(self, payload: Any) -> dict[str, Any] | None:
        return payload if isinstance(payload, dict) else None


async def get_cached_accounts(
    context: "AppContext",
    status: str,
    search: str | None = None,
    area_id: int | str | None = None,
    page: int = 1,
    page_size: int | None = None,
    access_token: str | None = None,
) -> dict[str, Any] | None:
    """
    Get one page of accounts through the cache.

    Returns:
        The backend response body, or None when it is unavailable
    """
    key = AccountsCache.generate_key(status, search, area_id, page)
    effective_page_size = page_size or context.settings.accounts_page_size

    async def fetch() -> ApiResult:
        return await fetch_accounts(
            context.client,
            status=status,
            search=search,
            area_id=area_id,
            page=page,
            page_size=effective_page_size,
            access_token=access_token,
        )

    outcome = await context.accounts_cache.get_cached(key, fetch)
    return outcome.data


async def get_accounts_count(
    context: "AppContext", status: str, access_token: str | None = None
) -> int:
    """Total number of accounts with the given status (0 when unavailable)."""

    async def fetch() -> ApiResult:
        return await fetch_accounts(
            context.client,
            status=status,
            page=1,
            page_size=1,
            access_token=access_token,
        )

    key = f"count:{_status_value(status)}"
    outcome = await context.accounts_cache.get_cached(key, fetch)
    data = (outcome.data or {}).get("data")
    if not isinstance(data, dict):
        return 0
    pagination = data.get("pagination") or {}
    return pagination.get("total") or 0


async def invalidate_accounts(
    context: "AppContext",
    status: str,
    search: str | None = None,
    area_id: int | str | None = None,
    page: int = 1,
) -> bool:
    """Drop one cached listing."""
    key = AccountsCache.generate_key(status, search, area_id, page)
    return await context.accounts_cache.invalidate(key)


async def invalidate_accounts_by_status(context: "AppContext", status: str) -> int:
    """Drop every cached page, search and count for one status."""
    value = _status_value(status)
    cache = context.accounts_cache
    dropped = await cache.invalidate_prefix(f"{value}:")
    if await cache.invalidate(f"count:{value}"):
        dropped += 1
    return dropped


async def invalidate_all_accounts(context: "AppContext") -> int:
    """Drop every cached listing and count, e.g. after an account moves status."""
    return await context.accounts_cache.invalidate_all()
