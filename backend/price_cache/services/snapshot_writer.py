"""Daily archive of the hot cache prices into the cold store."""

import logging
from typing import Optional

from .cold_store import price_snapshot_key
from .container import PriceCacheServices
from .price_refresh import load_price_blob
from .records import TRIGGER_SCHEDULED, DailySnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_JOB = "snapshot"


async def write_daily_snapshot(
    services: PriceCacheServices,
    trigger: str = TRIGGER_SCHEDULED,
) -> Optional[str]:
    """Archive today's prices; returns the object key written, if any.

    Raises StorageUnavailable when no cold store is configured: the archive
    has no acceptable degraded mode.
    """
    cold_store = services.require_cold_store()

    async with services.lock_for(SNAPSHOT_JOB):
        logger.info(f"[Snapshot] Writing daily price snapshot (trigger={trigger})")
        blob = await load_price_blob(services)
        if blob is None:
            logger.warning("[Snapshot] No prices in hot cache to snapshot")
            return None

        snapshot = DailySnapshot.from_blob(blob, services.now())
        key = price_snapshot_key(services.settings.price_limit, snapshot.snapshot_date)
        await cold_store.put_json(key, snapshot.to_dict())

    logger.info(f"[Snapshot] Wrote daily snapshot: {key} ({snapshot.prices.count} coins)")
    return key
