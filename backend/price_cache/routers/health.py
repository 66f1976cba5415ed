"""Health check router."""

from fastapi import APIRouter, Depends, Request

from .. import __version__
from ..services.container import PriceCacheServices, get_services
from ..services.records import to_iso

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, services: PriceCacheServices = Depends(get_services)):
    """Health check endpoint."""
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ok",
        "service": "price-cache",
        "version": __version__,
        "timestamp": to_iso(services.now()),
        "tiers": {
            "hotCache": True,
            "coldStore": services.cold_store_enabled,
        },
        "hotCacheWrites": services.hot_cache.write_count,
        "scheduler": {
            "enabled": services.settings.scheduler_enabled,
            "running": bool(scheduler and scheduler.running),
        },
    }
