"""
Service layer exceptions.

HTTP and network failures are returned as ``ApiResult`` values by the API
client; these exceptions are raised only by the cache engine and are always
caught by ``TimedCache``.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class CacheError(ServiceError):
    """Cache operation failed."""

    def __init__(self, message: str, segment: str | None = None):
        self.segment = segment
        super().__init__(message, service_id="cache")


class SegmentAlreadyProvisionedError(CacheError):
    """The cache engine refused to provision a segment a second time."""

    def __init__(self, segment: str):
        super().__init__(
            f"Cache segment '{segment}' is already provisioned", segment=segment
        )
