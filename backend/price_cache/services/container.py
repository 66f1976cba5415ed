"""Storage handles and providers shared by the jobs and the HTTP routes.

Built once at startup and passed explicitly; nothing here is module-global.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Request

from .cold_store import ObjectStore
from .config import Settings
from .errors import StorageUnavailable
from .hot_cache import HotCache, prices_key
from .providers import CoinGeckoProvider, CryptoRatesProvider
from .records import utc_now


@dataclass
class PriceCacheServices:
    """Everything a refresh job or request handler needs."""
    settings: Settings
    hot_cache: HotCache
    price_provider: Any
    metadata_provider: Any
    cold_store: Optional[ObjectStore] = None
    clock: Callable[[], datetime] = utc_now
    _locks: Dict[str, asyncio.Lock] = field(default_factory=dict, repr=False)

    @property
    def prices_key(self) -> str:
        return prices_key(self.settings.price_limit)

    @property
    def cold_store_enabled(self) -> bool:
        return self.cold_store is not None

    def now(self) -> datetime:
        return self.clock()

    def require_cold_store(self) -> ObjectStore:
        if self.cold_store is None:
            raise StorageUnavailable(
                "R2/object-store not configured: set cold_store.root to enable daily archives"
            )
        return self.cold_store

    def lock_for(self, job: str) -> asyncio.Lock:
        """One lock per job type so runs of the same job never interleave."""
        lock = self._locks.get(job)
        if lock is None:
            lock = self._locks[job] = asyncio.Lock()
        return lock


def build_services(settings: Settings, hot_cache: HotCache) -> PriceCacheServices:
    """Wire providers and storage tiers from settings."""
    provider_kwargs = {
        "timeout_seconds": settings.timeout_seconds,
        "user_agent": settings.user_agent,
    }
    return PriceCacheServices(
        settings=settings,
        hot_cache=hot_cache,
        cold_store=ObjectStore(settings.cold_store_root) if settings.cold_store_root else None,
        price_provider=CryptoRatesProvider(settings.cryptorates_url, **provider_kwargs),
        metadata_provider=CoinGeckoProvider(settings.coingecko_url, **provider_kwargs),
    )


def get_services(request: Request) -> PriceCacheServices:
    """Dependency returning the services built in the app lifespan."""
    return request.app.state.services
