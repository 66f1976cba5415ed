"""Append-only registry building, merging, loading and symbol resolution."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .cold_store import REGISTRY_OBJECT_KEY, ObjectStore
from .hot_cache import REGISTRY_KEY, HotCache
from .records import Registry, RegistryEntry, parse_iso, to_iso

logger = logging.getLogger(__name__)


def build_registry(coins: List[Dict[str, Any]], now: datetime) -> Registry:
    """Build a registry from one metadata fetch, with no history."""
    stamp = to_iso(now)
    registry = Registry(updated_at=stamp)

    for coin in coins:
        symbol = str(coin.get("symbol") or "").strip().upper()
        coin_id = str(coin.get("id") or "").strip()
        if not symbol or not coin_id:
            continue

        registry.by_id[coin_id] = RegistryEntry(
            id=coin_id,
            symbol=symbol,
            name=coin.get("name") or symbol,
            logo_url=coin.get("image") or "",
            market_cap_rank=coin.get("market_cap_rank") or 0,
            first_seen_at=stamp,
            last_seen_at=stamp,
        )
        ids = registry.symbol_to_ids.setdefault(symbol, [])
        if coin_id not in ids:
            ids.append(coin_id)

    return registry


def _latest_seen(previous: str, candidate: str) -> str:
    """lastSeenAt never moves backwards, even if the clock steps back."""
    return candidate if parse_iso(candidate) >= parse_iso(previous) else previous


def merge_registry(existing: Registry, fresh: Registry, now: datetime) -> Registry:
    """Merge a fresh fetch into the existing registry.

    Entries are never removed. A re-listed ID gets the fresh display fields
    and ``lastSeenAt=now`` (never earlier than its stored value) but keeps
    its original ``firstSeenAt``. Symbol index lists are unioned in
    insertion order.
    """
    stamp = to_iso(now)
    merged = existing.copy()

    for coin_id, entry in fresh.by_id.items():
        previous = merged.by_id.get(coin_id)
        merged.by_id[coin_id] = RegistryEntry(
            id=coin_id,
            symbol=entry.symbol,
            name=entry.name,
            logo_url=entry.logo_url,
            market_cap_rank=entry.market_cap_rank,
            first_seen_at=previous.first_seen_at if previous else stamp,
            last_seen_at=_latest_seen(previous.last_seen_at, stamp) if previous else stamp,
        )

    for symbol, ids in fresh.symbol_to_ids.items():
        merged_ids = merged.symbol_to_ids.setdefault(symbol, [])
        for coin_id in ids:
            if coin_id not in merged_ids:
                merged_ids.append(coin_id)

    merged.updated_at = stamp
    return merged


def composition_snapshot(coins: List[Dict[str, Any]], snapshot_date: str) -> Dict[str, Any]:
    """Record which IDs made up the ranked listing on ``snapshot_date``."""
    ids = []
    for position, coin in enumerate(coins, start=1):
        if not coin.get("id") or not coin.get("symbol"):
            continue
        ids.append({"id": coin["id"], "symbol": str(coin["symbol"]).upper(), "rank": position})
    return {"date": snapshot_date, "ids": ids}


class LoadStatus(str, Enum):
    """Outcome of reading the existing registry."""
    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


@dataclass
class RegistryLoad:
    """Tagged result of loading the authoritative registry."""
    status: LoadStatus
    registry: Optional[Registry] = None
    origin: Optional[str] = None  # "cold_store" or "hot_cache"
    reason: Optional[str] = None

    @classmethod
    def ok(cls, registry: Registry, origin: str) -> "RegistryLoad":
        return cls(status=LoadStatus.OK, registry=registry, origin=origin)

    @classmethod
    def empty(cls) -> "RegistryLoad":
        return cls(status=LoadStatus.EMPTY)

    @classmethod
    def error(cls, reason: str) -> "RegistryLoad":
        return cls(status=LoadStatus.ERROR, reason=reason)


async def load_existing_registry(
    hot_cache: HotCache,
    cold_store: Optional[ObjectStore],
) -> RegistryLoad:
    """Load the current registry, preferring the cold store over the hot mirror."""
    cold_error: Optional[str] = None

    if cold_store is not None:
        try:
            data = await cold_store.get_json(REGISTRY_OBJECT_KEY)
            if data is not None:
                return RegistryLoad.ok(Registry.from_dict(data), "cold_store")
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            cold_error = f"cold store registry unreadable: {e}"
            logger.warning(f"[Registry] {cold_error}; trying hot cache mirror")

    try:
        data = await hot_cache.get_json(REGISTRY_KEY)
        if data is not None:
            return RegistryLoad.ok(Registry.from_dict(data), "hot_cache")
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        reason = f"hot cache registry unreadable: {e}"
        return RegistryLoad.error(f"{cold_error}; {reason}" if cold_error else reason)

    if cold_error:
        return RegistryLoad.error(cold_error)
    return RegistryLoad.empty()


async def read_registry_for_serving(
    hot_cache: HotCache,
    cold_store: Optional[ObjectStore],
) -> Optional[Dict[str, Any]]:
    """Read path for the HTTP API: hot mirror first, then cold store.

    Never writes the cold copy back into the hot cache; every hot cache
    write belongs to a scheduled job.
    """
    data = await hot_cache.get_json(REGISTRY_KEY)
    if data is not None:
        return data
    if cold_store is None:
        return None
    try:
        return await cold_store.get_json(REGISTRY_OBJECT_KEY)
    except (OSError, ValueError) as e:
        logger.error(f"[Registry] Failed to read from cold store: {e}")
        return None


class ResolvePolicy(str, Enum):
    """How to pick one entry when a symbol maps to several IDs."""
    FIRST_LISTED = "first_listed"  # first ID ever indexed for the symbol
    LOWEST_RANK = "lowest_rank"  # best current market-cap rank, unranked last


def resolve_symbol(
    registry: Registry,
    symbol: str,
    policy: ResolvePolicy = ResolvePolicy.FIRST_LISTED,
) -> Optional[RegistryEntry]:
    """Resolve ``symbol`` to a single registry entry."""
    ids = registry.symbol_to_ids.get(symbol.strip().upper()) or []
    candidates = [registry.by_id[coin_id] for coin_id in ids if coin_id in registry.by_id]
    if not candidates:
        return None

    if policy == ResolvePolicy.LOWEST_RANK:
        # min() keeps listing order among equal ranks
        return min(
            candidates,
            key=lambda entry: entry.market_cap_rank if entry.market_cap_rank > 0 else float("inf"),
        )
    return candidates[0]
