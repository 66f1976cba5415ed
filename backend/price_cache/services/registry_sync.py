"""Daily registry refresh: fetch metadata, merge append-only, persist."""

import logging

from .cold_store import REGISTRY_OBJECT_KEY, composition_snapshot_key
from .container import PriceCacheServices
from .errors import RegistryLoadError
from .hot_cache import REGISTRY_KEY
from .records import TRIGGER_SCHEDULED, Registry, to_iso
from .registry import (
    LoadStatus,
    build_registry,
    composition_snapshot,
    load_existing_registry,
    merge_registry,
)

logger = logging.getLogger(__name__)

REGISTRY_JOB = "registry"


async def refresh_registry(
    services: PriceCacheServices,
    trigger: str = TRIGGER_SCHEDULED,
) -> Registry:
    """Refresh the registry from the metadata provider.

    The fetch happens first; if it fails nothing in storage is touched. An
    unreadable existing registry also aborts rather than being replaced,
    since replacing it would drop entries.
    """
    settings = services.settings
    async with services.lock_for(REGISTRY_JOB):
        logger.info(f"[Registry] Refreshing registry (trigger={trigger})")
        coins = await services.metadata_provider.fetch_top(
            settings.registry_pages, settings.registry_per_page
        )
        logger.info(f"[Registry] Fetched {len(coins)} coins from metadata provider")

        now = services.now()
        fresh = build_registry(coins, now)
        loaded = await load_existing_registry(services.hot_cache, services.cold_store)

        if loaded.status == LoadStatus.OK:
            merged = merge_registry(loaded.registry, fresh, now)
            logger.info(
                f"[Registry] Merged into existing registry from {loaded.origin} "
                f"({loaded.registry.count} -> {merged.count} entries)"
            )
        elif loaded.status == LoadStatus.EMPTY:
            logger.info("[Registry] No existing registry found, creating new one")
            merged = fresh
        else:
            raise RegistryLoadError(f"Existing registry could not be loaded: {loaded.reason}")

        payload = merged.to_dict()
        if services.cold_store is not None:
            await services.cold_store.put_json(REGISTRY_OBJECT_KEY, payload)
        else:
            logger.warning("[Registry] Cold store not configured; registry kept in hot cache only")
        await services.hot_cache.put_json(REGISTRY_KEY, payload)

        if services.cold_store is not None:
            snapshot_date = to_iso(now)[:10]
            await services.cold_store.put_json(
                composition_snapshot_key(settings.price_limit, snapshot_date),
                composition_snapshot(coins, snapshot_date),
            )

    logger.info(f"[Registry] Successfully updated registry with {merged.count} entries")
    return merged
