"""Archived daily snapshot routes."""

from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from ..services.cold_store import price_snapshot_key
from ..services.container import PriceCacheServices, get_services

router = APIRouter()


@router.get("/snapshots/prices/top{limit}/{snapshot_date}.json")
async def get_price_snapshot(
    limit: int,
    snapshot_date: str,
    services: PriceCacheServices = Depends(get_services),
):
    """Archived prices for one UTC day."""
    if services.cold_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Snapshots unavailable",
                "reason": "cold_store_not_configured",
                "message": "R2/object-store not configured",
            },
        )

    try:
        datetime.strptime(snapshot_date, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid date",
                "reason": "invalid_date",
                "message": f"Expected YYYY-MM-DD, got '{snapshot_date}'",
            },
        )

    data = await services.cold_store.get_json(price_snapshot_key(limit, snapshot_date))
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "Snapshot not found",
                "reason": "unknown_date",
                "message": f"No top{limit} snapshot for {snapshot_date}",
            },
        )

    return JSONResponse(content=data, headers={"Cache-Control": "public, max-age=86400"})
