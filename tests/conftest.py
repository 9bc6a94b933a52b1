"""Pytest configuration and fixtures for the portal data layer.

HTTP traffic goes through httpx.MockTransport; nothing leaves the process.
"""

import os
from typing import Callable

# Set before portal.settings is imported so global_settings stays predictable
os.environ.setdefault("BACKEND_API_URL", "http://backend.test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import httpx
import pytest

from portal.areas import parse_areas
from portal.context import create_app_context
from portal.services.cache import CacheEngine
from portal.settings import Settings

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    """Settings with no real backoff so retry tests stay fast."""
    return Settings(
        backend_api_url="http://backend.test",
        backend_api_timeout_ms=1000,
        backend_api_max_retries=2,
        backend_api_retry_delay_ms=0,
    )


@pytest.fixture
def engine() -> CacheEngine:
    return CacheEngine(debug=True)


@pytest.fixture
def raw_areas() -> list[dict]:
    """Areas as the backend sends them, with mixed id representations."""
    return [
        {"id": 1, "name": "Wessex", "area_type": "EA Area", "parent_id": None},
        {"id": "2", "name": "Thames", "area_type": "EA Area", "parent_id": None},
        {"id": 10, "name": "PSO West", "area_type": "PSO Area", "parent_id": "1"},
        {"id": 11, "name": "PSO East", "area_type": "PSO Area", "parent_id": 1},
        {"id": 20, "name": "PSO London", "area_type": "PSO Area", "parent_id": 2},
        {"id": 100, "name": "Bristol", "area_type": "RMA", "parent_id": 10},
        {"id": "101", "name": "Bath", "area_type": "RMA", "parent_id": "10"},
        {"id": 200, "name": "Westminster", "area_type": "RMA", "parent_id": 20},
    ]


@pytest.fixture
def areas(raw_areas):
    return parse_areas(raw_areas)


@pytest.fixture
def make_context(settings, engine):
    """Build an AppContext whose client talks to the given handler."""
    def _make(handler: Handler, **overrides):
        ctx_settings = settings.model_copy(update=overrides) if overrides else settings
        context = create_app_context(
            ctx_settings,
            transport=httpx.MockTransport(handler),
            engine=engine,
        )
        return context

    return _make
