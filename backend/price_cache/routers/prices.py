"""Price and status read routes.

Both routes read the same hot cache blob; the status route is a projection
of the status embedded in it.
"""

from datetime import timedelta
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..services.container import PriceCacheServices, get_services
from ..services.records import PriceSnapshotBlob, parse_iso, to_iso

router = APIRouter()

SERVICE_NAME = "price-cache"


class PriceStatusResponse(BaseModel):
    """Fetch status for consumers that poll it separately from the prices."""
    success: bool
    count: int
    error: Optional[str]
    timestamp: str
    trigger: str
    lastSuccess: Optional[str]
    updatedAt: Optional[str]
    stale: bool
    coldStoreEnabled: bool
    service: str = SERVICE_NAME


def is_stale(blob: PriceSnapshotBlob, services: PriceCacheServices) -> bool:
    """Stale if the last fetch failed or the last success is too old."""
    if not blob.last_fetch_ok or not blob.last_success_timestamp:
        return True
    age = services.now() - parse_iso(blob.last_success_timestamp)
    return age > timedelta(seconds=services.settings.stale_after_seconds)


def _check_limit(limit: int, services: PriceCacheServices) -> None:
    if limit != services.settings.price_limit:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "Unknown price list",
                "reason": "unknown_limit",
                "message": f"Only top{services.settings.price_limit} is served",
            },
        )


@router.get("/prices/status.json", response_model=PriceStatusResponse)
async def get_price_status(services: PriceCacheServices = Depends(get_services)):
    """Fetch status; synthesizes a default when nothing has been fetched yet."""
    data = await services.hot_cache.get_json(services.prices_key)
    if data is None:
        status_response = PriceStatusResponse(
            success=False,
            count=0,
            error="No status available",
            timestamp=to_iso(services.now()),
            trigger="unknown",
            lastSuccess=None,
            updatedAt=None,
            stale=True,
            coldStoreEnabled=services.cold_store_enabled,
        )
    else:
        blob = PriceSnapshotBlob.from_dict(data)
        status_response = PriceStatusResponse(
            success=blob.last_fetch_ok,
            count=blob.prices.count,
            error=blob.last_fetch_error,
            timestamp=blob.last_fetch_timestamp,
            trigger=blob.trigger,
            lastSuccess=blob.last_success_timestamp,
            updatedAt=blob.prices.updated_at,
            stale=is_stale(blob, services),
            coldStoreEnabled=services.cold_store_enabled,
        )

    return JSONResponse(
        content=status_response.model_dump(),
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/prices/top{limit}.json")
async def get_prices(limit: int, services: PriceCacheServices = Depends(get_services)):
    """Latest prices with embedded status; 503 until the first refresh."""
    _check_limit(limit, services)

    data = await services.hot_cache.get_json(services.prices_key)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "No price data available",
                "reason": "not_yet_fetched",
                "message": "Price data has not been fetched yet",
            },
        )

    return JSONResponse(
        content=data,
        headers={
            "Cache-Control": "public, max-age=60",
            "X-Updated-At": data.get("updatedAt") or "unknown",
        },
    )
