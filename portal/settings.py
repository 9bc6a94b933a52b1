import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Backend API Configuration
    backend_api_url: str = Field(
        default="http://localhost:3001", alias="BACKEND_API_URL"
    )
    backend_api_timeout_ms: int = Field(default=10000, alias="BACKEND_API_TIMEOUT")
    backend_api_max_retries: int = Field(default=2, alias="BACKEND_API_MAX_RETRIES")
    backend_api_retry_delay_ms: int = Field(
        default=500, alias="BACKEND_API_RETRY_DELAY"
    )

    # Cache Configuration
    cache_enabled: bool = Field(default=True, alias="CACHE_ENABLED")
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")
    areas_cache_segment: str = Field(default="areas", alias="AREAS_CACHE_SEGMENT")
    areas_cache_ttl_ms: int = Field(default=3_600_000, alias="AREAS_CACHE_TTL")
    accounts_cache_segment: str = Field(
        default="accounts", alias="ACCOUNTS_CACHE_SEGMENT"
    )
    accounts_cache_ttl_ms: int = Field(default=300_000, alias="ACCOUNTS_CACHE_TTL")

    # Accounts listing
    accounts_page_size: int = Field(default=20, alias="ACCOUNTS_PAGE_SIZE")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (after .env is loaded)."""
        return cls.model_validate(dict(os.environ))


global_settings = Settings.from_env()
