"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient, ASGITransport

from price_cache.main import app
from price_cache.models import create_engine, create_session_maker, init_db
from price_cache.services.cold_store import ObjectStore
from price_cache.services.config import Settings
from price_cache.services.container import PriceCacheServices, get_services
from price_cache.services.hot_cache import HotCache


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FIXED_NOW = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)

SAMPLE_PRICE_ROWS = [
    {"symbol": "btc", "name": "Bitcoin", "rank": 1, "price": 65000, "market_cap": 1.28e12,
     "volume_24h": 3.1e10, "change_24h": 1.5},
    {"symbol": "ETH", "name": "Ethereum", "rank": 2, "current_price": "3200.5",
     "market_cap_usd": 3.8e11, "total_volume": 1.4e10, "price_change_percentage_24h": -0.8},
    {"symbol": "SOL", "name": "Solana", "market_cap_rank": 5, "price_usd": 145.2},
]

SAMPLE_MARKET_ROWS = [
    {"id": "bitcoin", "symbol": "btc", "name": "Bitcoin",
     "image": "https://img.example/bitcoin.png", "market_cap_rank": 1},
    {"id": "ethereum", "symbol": "eth", "name": "Ethereum",
     "image": "https://img.example/ethereum.png", "market_cap_rank": 2},
    {"id": "usd-coin", "symbol": "usdc", "name": "USD Coin",
     "image": "https://img.example/usdc.png", "market_cap_rank": 7},
]


class FakeClock:
    """Controllable replacement for the services clock."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class StubPriceProvider:
    """Price provider returning canned rows, or raising ``error`` when set."""
    name = "CryptoRates"

    def __init__(self, rows):
        self.rows = rows
        self.error = None
        self.calls = 0

    async def fetch_prices(self, limit: int = 500):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]


class StubMetadataProvider:
    """Metadata provider returning canned market rows."""
    name = "CoinGecko"

    def __init__(self, rows):
        self.rows = rows
        self.error = None
        self.calls = 0

    async def fetch_top(self, pages: int = 2, per_page: int = 250):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]


@pytest.fixture(scope="function")
async def hot_cache():
    """Hot cache over a fresh in-memory database."""
    engine = create_engine(TEST_DATABASE_URL)
    await init_db(engine)

    yield HotCache(create_session_maker(engine))

    await engine.dispose()


@pytest.fixture
def cold_store(tmp_path):
    """Cold store rooted in a per-test temporary directory."""
    return ObjectStore(tmp_path / "cold")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(scheduler_enabled=False)


@pytest.fixture
def price_provider():
    return StubPriceProvider(SAMPLE_PRICE_ROWS)


@pytest.fixture
def metadata_provider():
    return StubMetadataProvider(SAMPLE_MARKET_ROWS)


@pytest.fixture
def services(settings, hot_cache, cold_store, price_provider, metadata_provider, clock):
    """Fully wired services with both storage tiers."""
    return PriceCacheServices(
        settings=settings,
        hot_cache=hot_cache,
        cold_store=cold_store,
        price_provider=price_provider,
        metadata_provider=metadata_provider,
        clock=clock,
    )


@pytest.fixture
def hot_only_services(services):
    """Same services without the cold tier."""
    services.cold_store = None
    return services


@pytest.fixture(scope="function")
async def client(services):
    """Create test client bound to the test services."""
    app.dependency_overrides[get_services] = lambda: services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
