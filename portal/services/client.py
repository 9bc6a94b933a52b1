"""
ApiClient - Async HTTP client for the backend API with retry and backoff.

Every outcome is normalized into an ApiResult:
- success: 2xx response, parsed JSON body (or None for non-JSON content)
- application error: non-2xx response, upstream errors passed through
- network error: status 0, errorCode NETWORK_ERROR

The client never raises for HTTP or transport failures.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

if TYPE_CHECKING:
    from portal.settings import Settings

NETWORK_ERROR = "NETWORK_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

# 408, 429, 500, 502, 503, 504
RETRYABLE_STATUS_CODES = frozenset(
    {
        httpx.codes.REQUEST_TIMEOUT,
        httpx.codes.TOO_MANY_REQUESTS,
        httpx.codes.INTERNAL_SERVER_ERROR,
        httpx.codes.BAD_GATEWAY,
        httpx.codes.SERVICE_UNAVAILABLE,
        httpx.codes.GATEWAY_TIMEOUT,
    }
)

# httpx.TransportError covers connect/read timeouts and connection failures;
# asyncio.TimeoutError is the per-attempt timer firing. Other
# httpx.RequestError subclasses become network errors without a retry.
RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.TransportError,
    asyncio.TimeoutError,
)


@dataclass
class ApiResult:
    """Normalized result of a backend API call."""

    success: bool
    status: int
    data: Any = None
    errors: list[dict[str, Any]] | None = None
    validation_errors: list[dict[str, Any]] | None = None

    @classmethod
    def ok(cls, status: int, data: Any = None) -> "ApiResult":
        return cls(success=True, status=status, data=data)

    @classmethod
    def failed(cls, status: int, body: Any = None) -> "ApiResult":
        """Build an application error result from an upstream error body."""
        errors = None
        validation_errors = None
        if isinstance(body, dict):
            errors = body.get("errors")
            validation_errors = body.get("validationErrors")

        if errors is None and validation_errors is None:
            errors = [{"errorCode": UNKNOWN_ERROR}]

        return cls(
            success=False,
            status=status,
            errors=errors,
            validation_errors=validation_errors,
        )

    @classmethod
    def network_error(cls, message: str) -> "ApiResult":
        return cls(
            success=False,
            status=0,
            errors=[{"errorCode": NETWORK_ERROR, "message": message}],
        )

    @property
    def error_code(self) -> str | None:
        """First error code carried by the result, if any."""
        for items in (self.errors, self.validation_errors):
            if items:
                return items[0].get("errorCode")
        return None

    def to_dict(self) -> dict[str, Any]:
        """Render the result in the backend's wire shape."""
        if self.success:
            return {"success": True, "status": self.status, "data": self.data}
        return {
            "success": False,
            "status": self.status,
            "errors": self.errors,
            "validationErrors": self.validation_errors,
        }


class ApiClient:
    """
    Backend API client with per-attempt timeout and linear backoff.

    Usage:
        async with ApiClient(base_url="http://backend:3001") as client:
            result = await client.request("/api/v1/areas")
            if result.success:
                areas = result.data

        # Build from configuration
        client = ApiClient.from_settings(global_settings)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._headers = headers or {}
        self._transport = transport

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ApiClient":
        """Create a client from settings (millisecond values become seconds)."""
        return cls(
            base_url=settings.backend_api_url,
            timeout=settings.backend_api_timeout_ms / 1000,
            max_retries=settings.backend_api_max_retries,
            retry_delay=settings.backend_api_retry_delay_ms / 1000,
            transport=transport,
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def request(
        self,
        path: str,
        method: str = "GET",
        json_data: Any = None,
        headers: dict[str, str] | None = None,
        retries: int | None = None,
        timeout: float | None = None,
    ) -> ApiResult:
        """
        Make a request to the backend API, retrying transient failures.

        Args:
            path: Path appended to the base URL (e.g. "/api/v1/areas")
            method: HTTP method
            json_data: JSON body for POST/PUT requests
            headers: Additional headers (override the defaults)
            retries: Override the configured retry count
            timeout: Override the per-attempt timeout in seconds

        Returns:
            ApiResult describing the final outcome
        """
        url = f"{self._base_url}{path}"
        max_retries = self._max_retries if retries is None else retries
        attempt_timeout = timeout or self._timeout

        req_headers = {"Content-Type": "application/json"}
        req_headers.update(self._headers)
        if headers:
            req_headers.update(headers)

        last_result: ApiResult | None = None
        last_network_error: ApiResult | None = None

        for attempt in range(max_retries + 1):
            has_attempts_left = attempt < max_retries

            try:
                response = await self._execute_request(
                    url=url,
                    method=method,
                    headers=req_headers,
                    json_data=json_data,
                    timeout=attempt_timeout,
                )
            except RETRYABLE_EXCEPTIONS as e:
                message = self._describe_transport_error(e, attempt_timeout)
                last_network_error = ApiResult.network_error(message)

                if has_attempts_left:
                    delay = self._backoff(attempt)
                    logger.warning(
                        f"{method} {path} failed ({message}), "
                        f"retrying in {delay:.3f}s "
                        f"(attempt {attempt + 1}/{max_retries + 1})"
                    )
                    await asyncio.sleep(delay)
                    continue

                logger.error(
                    f"{method} {path} failed after {attempt + 1} attempt(s): {message}"
                )
                return last_network_error
            except httpx.RequestError as e:
                # Decoding failures, redirect loops: not retried
                message = str(e) or type(e).__name__
                logger.error(f"{method} {path} failed: {message}")
                return ApiResult.network_error(message)

            if response.is_success:
                return ApiResult.ok(response.status_code, self._parse_body(response))

            last_result = ApiResult.failed(
                response.status_code, self._parse_body(response)
            )

            if response.status_code in RETRYABLE_STATUS_CODES and has_attempts_left:
                delay = self._backoff(attempt)
                logger.warning(
                    f"{method} {path} returned HTTP {response.status_code}, "
                    f"retrying in {delay:.3f}s "
                    f"(attempt {attempt + 1}/{max_retries + 1})"
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES:
                logger.error(
                    f"{method} {path} returned HTTP {response.status_code} "
                    f"after {attempt + 1} attempt(s)"
                )
            return last_result

        # Only reachable with a negative retry count
        if last_result is not None:
            return last_result
        return last_network_error or ApiResult.network_error("No attempts made")

    async def _execute_request(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        json_data: Any,
        timeout: float,
    ) -> httpx.Response:
        """Execute one attempt, bounded by its own timer."""
        client = await self._get_http_client()
        return await asyncio.wait_for(
            client.request(
                method=method,
                url=url,
                headers=headers,
                json=json_data,
                timeout=timeout,
            ),
            timeout=timeout,
        )

    def _backoff(self, attempt: int) -> float:
        return self._retry_delay * (attempt + 1)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        """Parse a JSON body, or None when the response is not JSON."""
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning(
                f"Invalid JSON body from {response.request.url} "
                f"(HTTP {response.status_code})"
            )
            return None

    @staticmethod
    def _describe_transport_error(error: BaseException, timeout: float) -> str:
        if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
            return f"Request timed out after {timeout}s"
        return str(error) or type(error).__name__

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ApiClient closed")

    async def __aenter__(self) -> "ApiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
