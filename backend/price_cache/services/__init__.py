# Business Logic Services

from .config import (
    ConfigService,
    ConfigValidationException,
    ConfigValidationError,
    Settings,
)
from .container import PriceCacheServices, build_services, get_services
from .errors import (
    PriceCacheError,
    ProviderError,
    RateLimitError,
    MalformedResponse,
    StorageUnavailable,
    RegistryLoadError,
)
from .hot_cache import HotCache
from .cold_store import ObjectStore
from .logging_service import configure_logging
from .price_refresh import refresh_prices, record_price_failure
from .registry_sync import refresh_registry
from .snapshot_writer import write_daily_snapshot
from .scheduler import RefreshScheduler, run_daily_tick

__all__ = [
    # Config
    "ConfigService",
    "ConfigValidationException",
    "ConfigValidationError",
    "Settings",
    # Wiring
    "PriceCacheServices",
    "build_services",
    "get_services",
    # Errors
    "PriceCacheError",
    "ProviderError",
    "RateLimitError",
    "MalformedResponse",
    "StorageUnavailable",
    "RegistryLoadError",
    # Storage
    "HotCache",
    "ObjectStore",
    # Logging
    "configure_logging",
    # Jobs
    "refresh_prices",
    "record_price_failure",
    "refresh_registry",
    "write_daily_snapshot",
    "RefreshScheduler",
    "run_daily_tick",
]
