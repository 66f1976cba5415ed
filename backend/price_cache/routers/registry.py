"""Registry read routes."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..services.container import PriceCacheServices, get_services
from ..services.records import Registry
from ..services.registry import ResolvePolicy, read_registry_for_serving, resolve_symbol

router = APIRouter()


class RegistryEntryResponse(BaseModel):
    """One registry entry."""
    id: str
    symbol: str
    name: str
    logoUrl: str
    marketCapRank: int
    firstSeenAt: str
    lastSeenAt: str


class SymbolResolutionResponse(BaseModel):
    """A symbol resolved to one registry entry."""
    symbol: str
    policy: ResolvePolicy
    id: str
    logoUrl: Optional[str]
    entry: RegistryEntryResponse
    candidates: List[str]


def _registry_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "error": "No registry data available",
            "reason": "registry_unavailable",
            "message": "Registry has not been populated yet",
        },
    )


@router.get("/registry/latest.json")
async def get_registry(services: PriceCacheServices = Depends(get_services)):
    """Hot cache mirror, falling back to the cold store (read-only)."""
    data = await read_registry_for_serving(services.hot_cache, services.cold_store)
    if data is None:
        raise _registry_unavailable()

    return JSONResponse(content=data, headers={"Cache-Control": "public, max-age=3600"})


@router.get("/registry/symbols/{symbol}", response_model=SymbolResolutionResponse)
async def resolve_registry_symbol(
    symbol: str,
    policy: ResolvePolicy = ResolvePolicy.FIRST_LISTED,
    services: PriceCacheServices = Depends(get_services),
):
    """Resolve a ticker symbol to a stable ID and logo."""
    data = await read_registry_for_serving(services.hot_cache, services.cold_store)
    if data is None:
        raise _registry_unavailable()

    registry = Registry.from_dict(data)
    entry = resolve_symbol(registry, symbol, policy)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "Unknown symbol",
                "reason": "unknown_symbol",
                "message": f"Symbol {symbol.upper()} is not in the registry",
            },
        )

    return SymbolResolutionResponse(
        symbol=entry.symbol,
        policy=policy,
        id=entry.id,
        logoUrl=entry.logo_url or None,
        entry=RegistryEntryResponse(**entry.to_dict()),
        candidates=registry.symbol_to_ids.get(entry.symbol, []),
    )
