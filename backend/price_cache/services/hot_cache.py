"""Tier 1: low-latency key/value cache backed by SQLAlchemy."""

import json
import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from ..models import HotCacheEntry

logger = logging.getLogger(__name__)

PRICES_KEY_TEMPLATE = "prices:top{limit}:latest"
REGISTRY_KEY = "registry:coingecko:latest"


def prices_key(limit: int) -> str:
    return PRICES_KEY_TEMPLATE.format(limit=limit)


class HotCache:
    """JSON blobs by key, last write wins.

    Writes are counted because the hot tier runs under a daily write quota.
    """

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker
        self.write_count = 0

    async def get_json(self, key: str) -> Optional[Any]:
        async with self._session_maker() as session:
            entry = await session.get(HotCacheEntry, key)
            if entry is None:
                return None
            return json.loads(entry.value)

    async def put_json(self, key: str, value: Any) -> None:
        payload = json.dumps(value, separators=(",", ":"))
        async with self._session_maker() as session:
            entry = await session.get(HotCacheEntry, key)
            if entry is None:
                session.add(HotCacheEntry(key=key, value=payload))
            else:
                entry.value = payload
            await session.commit()

        self.write_count += 1
        logger.debug(f"Hot cache write #{self.write_count}: {key} ({len(payload)} bytes)")
