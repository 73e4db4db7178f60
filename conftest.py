import os
import tempfile

os.environ.setdefault(
    "RATE_LIMIT_STATE_FILE",
    os.path.join(tempfile.mkdtemp(prefix="rates-api-"), "rate_limit.json"),
)
os.environ.setdefault("VENDOR_MOCK", "false")

import inspect

import httpx
import pytest
from httpx import AsyncClient

from app.main import app
from app.api.rates import get_quote_service
from app.core.config import settings
from app.core.rate_limit import RateLimitStateStore, TokenBucketRateLimiter
from app.services.quote_service import QuoteService
from app.services.vendor import VendorGateway


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state_store(tmp_path):
    return RateLimitStateStore(str(tmp_path / "cache" / "rate_limit.json"))


@pytest.fixture
def rate_limiter(state_store, clock):
    return TokenBucketRateLimiter(capacity=5, window=60, store=state_store, clock=clock)


@pytest.fixture
def vendor_gateway_factory():
    def _make(handler, url: str = "https://vendor.test/rates"):
        return VendorGateway(url=url, transport=httpx.MockTransport(handler))
    return _make


@pytest.fixture
def quote_service_factory(vendor_gateway_factory):
    def _make(handler, **overrides):
        config = settings.model_copy(update=overrides)
        return QuoteService(config, vendor_gateway_factory(handler))
    return _make


@pytest.fixture
def install_vendor(quote_service_factory):
    """Route /api/* through a QuoteService whose vendor is ``handler``."""
    def _install(handler, **overrides):
        service = quote_service_factory(handler, **overrides)
        app.dependency_overrides[get_quote_service] = lambda: service
        return service
    yield _install
    app.dependency_overrides.pop(get_quote_service, None)


@pytest.fixture
def disabled_rate_limiter(state_store):
    return TokenBucketRateLimiter(
        capacity=settings.RATE_LIMIT,
        window=settings.RATE_LIMIT_WINDOW,
        store=state_store,
        enabled=False,
    )


@pytest.fixture
async def test_client(disabled_rate_limiter):
    original = app.state.rate_limiter
    app.state.rate_limiter = disabled_rate_limiter
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.state.rate_limiter = original


@pytest.fixture
async def limited_client(rate_limiter):
    original = app.state.rate_limiter
    app.state.rate_limiter = rate_limiter
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.state.rate_limiter = original


@pytest.fixture
def valid_rate_request():
    return {
        "Unit Name": "Standard Unit",
        "Arrival": "25/01/2024",
        "Departure": "28/01/2024",
        "Occupants": 2,
        "Ages": [25, 30],
    }


@pytest.fixture
def unit_catalog():
    return dict(settings.UNIT_TYPE_MAPPING)


def vendor_json(body, status_code: int = 200):
    """MockTransport handler answering every call with ``body`` as JSON."""
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=body)
    return _handler


@pytest.fixture
def vendor_reply():
    return vendor_json


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "rate_limit: marks tests related to rate limiting"
    )
    config.addinivalue_line(
        "markers", "normalizer: marks tests related to vendor response normalization"
    )
    config.addinivalue_line(
        "markers", "validation: marks tests related to request validation"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to handle asyncio tests
    """
    for item in items:
        if inspect.iscoroutinefunction(item.function):
            item.add_marker(pytest.mark.asyncio)
