"""
MARKET PULSE — Test Configuration & Fixtures
Shared fixtures for all test modules.
"""
import aiohttp
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from market_pulse.config.settings import ClientSettings, DataSourceSettings
from market_pulse.tests.stubs import FakeUpstream


@pytest_asyncio.fixture
async def upstream():
    """Fake upstream providers served on a local port."""
    fake = FakeUpstream()
    server = TestServer(fake.build_app())
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    yield fake
    await server.close()


@pytest.fixture
def data_settings(upstream) -> DataSourceSettings:
    """Every provider pointed at the fake upstream, with short timeouts."""
    return DataSourceSettings(
        coingecko_base_url=upstream.base_url,
        binance_base_url=upstream.base_url,
        stooq_base_url=upstream.base_url,
        yahoo_base_url=upstream.base_url,
        coingecko_timeout_seconds=0.3,
        binance_timeout_seconds=0.3,
        stooq_timeout_seconds=0.3,
        yahoo_timeout_seconds=0.3,
        user_agent="market-pulse-tests/1.0",
        crypto_cache_ttl_seconds=0,
    )


@pytest.fixture
def client_settings() -> ClientSettings:
    return ClientSettings(
        api_base_url="http://testserver",
        refresh_interval_seconds=0.05,
        listing_refresh_interval_seconds=0.05,
        crypto_ids=["bitcoin", "ethereum"],
        listing_per_page=50,
    )


@pytest_asyncio.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture
def forex_payload():
    return {
        "success": True,
        "data": {
            "EUR/USD": {"symbol": "EUR/USD", "price": 1.0854, "change": 0.5, "source": "stooq"},
            "AAPL": {"symbol": "AAPL", "price": 227.5, "change": 3.41, "source": "yahoo"},
        },
    }


@pytest.fixture
def crypto_payload():
    return {
        "success": True,
        "data": [
            {"id": "bitcoin", "symbol": "btc", "current_price": 64000.0, "price_change_percentage_24h": 2.1},
            {"id": "ethereum", "symbol": "eth", "current_price": 3100.0, "price_change_percentage_24h": -4.2},
        ],
        "page": 1,
        "per_page": 2,
        "has_more": True,
    }
