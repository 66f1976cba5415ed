"""Price Cache FastAPI Application.

Serves cached prices, the asset registry and daily snapshots, and runs the
scheduled refresh jobs that keep them current.
"""

import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .models import create_engine, create_session_maker, init_db
from .routers import admin, health, prices, registry, snapshots
from .services.config import ConfigService, ConfigValidationException
from .services.container import build_services
from .services.hot_cache import HotCache
from .services.logging_service import configure_logging
from .services.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: Validate configuration
    try:
        settings = ConfigService().load_settings()
    except ConfigValidationException as e:
        print(f"FATAL: {e}")
        print("Server cannot start with invalid configuration.")
        sys.exit(1)

    configure_logging(settings.log_level, settings.log_format, settings.log_json)

    # Hot cache tier
    engine = create_engine(settings.database_url)
    await init_db(engine)
    hot_cache = HotCache(create_session_maker(engine))
    logger.info("Hot cache initialized")

    services = build_services(settings, hot_cache)
    if services.cold_store is None:
        logger.warning("Cold store not configured: daily snapshots will fail until cold_store.root is set")
    else:
        logger.info(f"Cold store at {settings.cold_store_root}")
    app.state.services = services

    scheduler = RefreshScheduler(
        services,
        price_cron=settings.price_cron,
        daily_cron=settings.daily_cron,
        enabled=settings.scheduler_enabled,
    )
    scheduler.start()
    app.state.scheduler = scheduler

    yield

    # Shutdown
    logger.info("Initiating graceful shutdown...")
    scheduler.shutdown()
    await engine.dispose()
    logger.info("Graceful shutdown complete")


app = FastAPI(
    title="Price Cache API",
    description="Cached crypto prices, asset registry and daily snapshots",
    version=__version__,
    lifespan=lifespan,
)

# Read routes are public
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(prices.router, tags=["Prices"])
app.include_router(registry.router, tags=["Registry"])
app.include_router(snapshots.router, tags=["Snapshots"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


@app.get("/")
async def root():
    """Root endpoint pointing at health and docs."""
    return {"message": "Price Cache API", "health": "/health", "docs": "/docs"}
