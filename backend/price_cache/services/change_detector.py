"""Content hashing for skip-on-unchanged writes."""

import json
from typing import Dict

from .records import PriceRecord


def djb2(data: bytes) -> int:
    """32-bit djb2 hash."""
    value = 5381
    for byte in data:
        value = ((value << 5) + value + byte) & 0xFFFFFFFF
    return value


def content_hash(by_symbol: Dict[str, PriceRecord]) -> str:
    """Hash the symbol -> record mapping only; status fields never affect it."""
    canonical = json.dumps(
        {symbol: record.to_dict() for symbol, record in by_symbol.items()},
        sort_keys=True,
        separators=(",", ":"),
    )
    return format(djb2(canonical.encode("utf-8")), "08x")
