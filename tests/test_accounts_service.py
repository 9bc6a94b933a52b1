"""Accounts data source tests: query building, caching and submission."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from portal.services.accounts import (
    ACCOUNT_REQUEST_PATH,
    ACCOUNTS_PATH,
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


def listing(total=2):
    return {
        "success": True,
        "data": {
            "users": [{"id": 1}, {"id": 2}][:total],
            "pagination": {"page": 1, "pageSize": 20, "total": total},
        },
    }


class Backend:
    """Handler serving a fixed response and recording requests."""

    def __init__(self, body=None, status=200):
        self.body = listing() if body is None else body
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    def query(self, index=0) -> dict[str, list[str]]:
        return parse_qs(self.requests[index].url.query.decode())


class TestFetchAccounts:
    @pytest.mark.asyncio
    async def test_builds_query_string(self, make_context):
        backend = Backend()
        async with make_context(backend) as context:
            await fetch_accounts(
                context.client,
                status=AccountStatus.PENDING,
                search="  smith ",
                area_id=10,
                page=2,
                page_size=50,
            )

        assert backend.requests[0].url.path == ACCOUNTS_PATH
        assert backend.query() == {
            "status": ["pending"],
            "page": ["2"],
            "pageSize": ["50"],
            "search": ["smith"],
            "areaId": ["10"],
        }

    @pytest.mark.asyncio
    async def test_blank_search_and_area_omitted(self, make_context):
        backend = Backend()
        async with make_context(backend) as context:
            await fetch_accounts(context.client, "active", search="   ")

        query = backend.query()
        assert "search" not in query
        assert "areaId" not in query
        assert query["status"] == ["active"]

    @pytest.mark.asyncio
    async def test_access_token_sent_as_bearer(self, make_context):
        backend = Backend()
        async with make_context(backend) as context:
            await fetch_accounts(context.client, "pending", access_token="tok")
            await fetch_accounts(context.client, "pending")

        assert backend.requests[0].headers["authorization"] == "Bearer tok"
        assert "authorization" not in backend.requests[1].headers


class TestAccountsCache:
    def test_generate_key(self):
        assert AccountsCache.generate_key("pending") == "pending:::1"
        assert (
            AccountsCache.generate_key(AccountStatus.APPROVED, "bob", 10, 3)
            == "approved:bob:10:3"
        )

    @pytest.mark.asyncio
    async def test_listing_cached_per_query(self, make_context):
        backend = Backend()
        async with make_context(backend) as context:
            first = await get_cached_accounts(context, "pending")
            again = await get_cached_accounts(context, "pending")
            other_page = await get_cached_accounts(context, "pending", page=2)

        assert first == listing()
        assert again == first
        assert other_page == first
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_page_size_defaults_to_settings(self, make_context):
        backend = Backend()
        async with make_context(backend, accounts_page_size=15) as context:
            await get_cached_accounts(context, "active")

        assert backend.query()["pageSize"] == ["15"]

    @pytest.mark.asyncio
    async def test_failure_returns_none(self, make_context):
        backend = Backend({"errors": [{"errorCode": "AUTH_FORBIDDEN"}]}, status=403)
        async with make_context(backend) as context:
            assert await get_cached_accounts(context, "pending") is None

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, make_context):
        backend = Backend()
        async with make_context(backend) as context:
            await get_cached_accounts(context, "pending", search="bob")
            assert await invalidate_accounts(context, "pending", search="bob")
            await get_cached_accounts(context, "pending", search="bob")

        assert len(backend.requests) == 2


class TestAccountsCount:
    @pytest.mark.asyncio
    async def test_reads_pagination_total(self, make_context):
        backend = Backend(listing(total=7))
        async with make_context(backend) as context:
            count = await get_accounts_count(context, AccountStatus.PENDING)

        assert count == 7
        assert backend.query()["pageSize"] == ["1"]

    @pytest.mark.asyncio
    async def test_unavailable_counts_zero(self, make_context):
        backend = Backend({"errors": []}, status=400)
        async with make_context(backend) as context:
            assert await get_accounts_count(context, "pending") == 0


class TestSubmitAccountRequest:
    @pytest.mark.asyncio
    async def test_posts_payload(self, make_context):
        backend = Backend({"success": True, "data": {"userId": 5}}, status=201)
        payload = {"firstName": "Ann", "areas": [{"areaId": 10, "primary": True}]}
        async with make_context(backend) as context:
            result = await submit_account_request(context.client, payload)

        request = backend.requests[0]
        assert request.method == "POST"
        assert request.url.path == ACCOUNT_REQUEST_PATH
        assert json.loads(request.content) == payload
        assert result.success is True
        assert result.data["data"]["userId"] == 5

    @pytest.mark.asyncio
    async def test_validation_errors_returned(self, make_context):
        validation = [{"field": "email", "errorCode": "VALIDATION_EMAIL_DUPLICATE"}]
        backend = Backend({"validationErrors": validation}, status=400)
        async with make_context(backend) as context:
            result = await submit_account_request(context.client, {})

        assert result.success is False
        assert result.validation_errors == validation


class TestBulkInvalidation:
    @pytest.mark.asyncio
    async def test_by_status_refetches_every_page_of_that_status(self, make_context):
        backend = Backend()
        async with make_context(backend) as context:
            await get_cached_accounts(context, "pending", page=1)
            await get_cached_accounts(context, "pending", page=2)
            await get_cached_accounts(context, "pending", search="bob")
            await get_accounts_count(context, "pending")
            await get_cached_accounts(context, "active", page=1)
            assert len(backend.requests) == 5

            dropped = await invalidate_accounts_by_status(
                context, AccountStatus.PENDING
            )

            await get_cached_accounts(context, "pending", page=2)
            await get_accounts_count(context, "pending")
            await get_cached_accounts(context, "active", page=1)

        assert dropped == 4
        assert len(backend.requests) == 7
        assert backend.query(5)["page"] == ["2"]

    @pytest.mark.asyncio
    async def test_invalidate_all_refetches_every_listing(self, make_context):
        backend = Backend()
        async with make_context(backend) as context:
            await get_cached_accounts(context, "pending", page=2)
            await get_cached_accounts(context, "active", page=1)

            assert await invalidate_all_accounts(context) == 2

            await get_cached_accounts(context, "pending", page=2)
            await get_cached_accounts(context, "active", page=1)

        assert len(backend.requests) == 4

    @pytest.mark.asyncio
    async def test_disabled_cache_invalidates_nothing(self, make_context):
        async with make_context(Backend(), cache_enabled=False) as context:
            await get_cached_accounts(context, "pending")

            assert await invalidate_all_accounts(context) == 0
            assert await invalidate_accounts_by_status(context, "pending") == 0
