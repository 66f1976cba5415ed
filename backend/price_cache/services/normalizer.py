"""Normalization of upstream market payloads.

Upstream rows name the same value differently depending on API version, so
each semantic value has an ordered list of candidate field names. The first
candidate holding a usable number wins.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from .errors import MalformedResponse
from .records import PRICE_SOURCE, PriceRecord, PriceSet

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("price", "current_price", "price_usd")
MARKET_CAP_FIELDS = ("market_cap", "market_cap_usd")
VOLUME_FIELDS = ("volume_24h", "total_volume", "volume_24h_usd")
CHANGE_FIELDS = ("change_24h", "price_change_percentage_24h", "change_24h_pct")
RANK_FIELDS = ("rank", "market_cap_rank")

# Envelope keys that may wrap the coin list
PAYLOAD_LIST_KEYS = ("coins", "data")


def extract_number(row: Dict[str, Any], fields: Sequence[str]) -> Optional[float]:
    """Return the first finite number found under ``fields``, or None."""
    for name in fields:
        value = row.get(name)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            try:
                number = float(str(value).strip())
            except ValueError:
                continue
        if math.isfinite(number):
            return number
    return None


def extract_coin_rows(payload: Any, provider: str = "") -> List[Dict[str, Any]]:
    """Pull the list of coin rows out of a price provider payload.

    Accepts a bare list or an object wrapping the list under ``coins`` or
    ``data``. Raises MalformedResponse for anything else or an empty list.
    """
    rows: Any = None
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict):
        for key in PAYLOAD_LIST_KEYS:
            if isinstance(payload.get(key), list):
                rows = payload[key]
                break

    if rows is None:
        raise MalformedResponse(
            f"Unrecognized response shape from {provider or 'provider'}", provider=provider
        )
    if not rows:
        raise MalformedResponse(f"Empty response from {provider or 'provider'}", provider=provider)

    return [row for row in rows if isinstance(row, dict)]


def normalize_prices(rows: List[Dict[str, Any]], updated_at: Optional[str] = None) -> PriceSet:
    """Convert provider rows into a symbol-keyed PriceSet.

    Rows without a symbol are skipped. On a symbol collision the first row
    seen wins, since providers list in rank order. Missing ranks fall back to
    the position among accepted rows.
    """
    by_symbol: Dict[str, PriceRecord] = {}
    position = 1
    skipped = 0

    for row in rows:
        symbol = str(row.get("symbol") or "").strip().upper()
        if not symbol:
            skipped += 1
            continue
        if symbol in by_symbol:
            skipped += 1
            continue

        rank = extract_number(row, RANK_FIELDS)
        by_symbol[symbol] = PriceRecord(
            symbol=symbol,
            name=str(row.get("name") or symbol),
            rank=int(rank) if rank is not None and int(rank) >= 1 else position,
            price_usd=max(0.0, extract_number(row, PRICE_FIELDS) or 0.0),
            market_cap_usd=max(0.0, extract_number(row, MARKET_CAP_FIELDS) or 0.0),
            volume_24h_usd=max(0.0, extract_number(row, VOLUME_FIELDS) or 0.0),
            change_24h_pct=extract_number(row, CHANGE_FIELDS) or 0.0,
        )
        position += 1

    if skipped:
        logger.debug(f"Normalizer skipped {skipped} rows (missing or duplicate symbol)")

    return PriceSet(source=PRICE_SOURCE, updated_at=updated_at, by_symbol=by_symbol)
