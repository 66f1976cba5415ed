"""Wire records stored in the hot cache and the cold store.

All records serialize to camelCase JSON, which is the shape the portfolio
UI reads from ``/prices`` and ``/registry``.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

PRICE_SOURCE = "cryptorates.ai"
REGISTRY_SOURCE = "coingecko"

TRIGGER_SCHEDULED = "scheduled"
TRIGGER_MANUAL = "manual"

STATUS_FIELDS = (
    "lastFetchOk",
    "lastFetchError",
    "lastFetchTimestamp",
    "lastSuccessTimestamp",
    "trigger",
    "dataHash",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format as ``2026-01-05T09:00:00.000Z``."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class PriceRecord:
    """Normalized market data for one symbol."""
    symbol: str
    name: str
    rank: int
    price_usd: float = 0.0
    market_cap_usd: float = 0.0  # 0 = unknown
    volume_24h_usd: float = 0.0
    change_24h_pct: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "rank": self.rank,
            "priceUsd": self.price_usd,
            "marketCapUsd": self.market_cap_usd,
            "volume24hUsd": self.volume_24h_usd,
            "change24hPct": self.change_24h_pct,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceRecord":
        return cls(
            symbol=data["symbol"],
            name=data.get("name", data["symbol"]),
            rank=data.get("rank", 0),
            price_usd=data.get("priceUsd", 0.0),
            market_cap_usd=data.get("marketCapUsd", 0.0),
            volume_24h_usd=data.get("volume24hUsd", 0.0),
            change_24h_pct=data.get("change24hPct", 0.0),
        )


@dataclass
class PriceSet:
    """Normalized price data from one fetch, without any status."""
    source: str = PRICE_SOURCE
    updated_at: Optional[str] = None
    by_symbol: Dict[str, PriceRecord] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.by_symbol)

    def by_symbol_dict(self) -> Dict[str, Dict[str, Any]]:
        return {symbol: record.to_dict() for symbol, record in self.by_symbol.items()}


@dataclass
class PriceSnapshotBlob:
    """The hot cache "latest prices" record with its embedded fetch status."""
    prices: PriceSet
    last_fetch_ok: bool
    last_fetch_timestamp: str
    trigger: str
    data_hash: Optional[str] = None
    last_fetch_error: Optional[str] = None
    last_success_timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.prices.source,
            "updatedAt": self.prices.updated_at,
            "count": self.prices.count,
            "bySymbol": self.prices.by_symbol_dict(),
            "lastFetchOk": self.last_fetch_ok,
            "lastFetchError": self.last_fetch_error,
            "lastFetchTimestamp": self.last_fetch_timestamp,
            "lastSuccessTimestamp": self.last_success_timestamp,
            "trigger": self.trigger,
            "dataHash": self.data_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceSnapshotBlob":
        by_symbol = {
            symbol: PriceRecord.from_dict(record)
            for symbol, record in (data.get("bySymbol") or {}).items()
        }
        return cls(
            prices=PriceSet(
                source=data.get("source", PRICE_SOURCE),
                updated_at=data.get("updatedAt"),
                by_symbol=by_symbol,
            ),
            last_fetch_ok=bool(data.get("lastFetchOk", False)),
            last_fetch_error=data.get("lastFetchError"),
            last_fetch_timestamp=data.get("lastFetchTimestamp", ""),
            last_success_timestamp=data.get("lastSuccessTimestamp"),
            trigger=data.get("trigger", "unknown"),
            data_hash=data.get("dataHash"),
        )


@dataclass
class DailySnapshot:
    """Archived copy of the price data for one UTC calendar day."""
    snapshot_date: str
    snapshot_timestamp: str
    prices: PriceSet

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshotDate": self.snapshot_date,
            "snapshotTimestamp": self.snapshot_timestamp,
            "source": self.prices.source,
            "updatedAt": self.prices.updated_at,
            "count": self.prices.count,
            "bySymbol": self.prices.by_symbol_dict(),
        }

    @classmethod
    def from_blob(cls, blob: PriceSnapshotBlob, now: datetime) -> "DailySnapshot":
        return cls(
            snapshot_date=now.astimezone(timezone.utc).date().isoformat(),
            snapshot_timestamp=to_iso(now),
            prices=blob.prices,
        )


@dataclass
class RegistryEntry:
    """Stable identity and display metadata for one asset."""
    id: str
    symbol: str
    name: str
    logo_url: str
    market_cap_rank: int
    first_seen_at: str
    last_seen_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "logoUrl": self.logo_url,
            "marketCapRank": self.market_cap_rank,
            "firstSeenAt": self.first_seen_at,
            "lastSeenAt": self.last_seen_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryEntry":
        return cls(
            id=data["id"],
            symbol=data["symbol"],
            name=data.get("name", data["symbol"]),
            logo_url=data.get("logoUrl", ""),
            market_cap_rank=data.get("marketCapRank", 0),
            first_seen_at=data["firstSeenAt"],
            last_seen_at=data.get("lastSeenAt", data["firstSeenAt"]),
        )


@dataclass
class Registry:
    """Append-only asset registry keyed by stable external ID."""
    updated_at: str
    by_id: Dict[str, RegistryEntry] = field(default_factory=dict)
    symbol_to_ids: Dict[str, List[str]] = field(default_factory=dict)
    source: str = REGISTRY_SOURCE

    @property
    def count(self) -> int:
        return len(self.by_id)

    def copy(self) -> "Registry":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "updatedAt": self.updated_at,
            "count": self.count,
            "byId": {entry_id: entry.to_dict() for entry_id, entry in self.by_id.items()},
            "symbolToIds": {symbol: list(ids) for symbol, ids in self.symbol_to_ids.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Registry":
        return cls(
            source=data.get("source", REGISTRY_SOURCE),
            updated_at=data["updatedAt"],
            by_id={
                entry_id: RegistryEntry.from_dict(entry)
                for entry_id, entry in data.get("byId", {}).items()
            },
            symbol_to_ids={
                symbol: list(ids) for symbol, ids in data.get("symbolToIds", {}).items()
            },
        )
