"""High-frequency price refresh into the hot cache."""

import logging
from typing import Optional

from .change_detector import content_hash
from .container import PriceCacheServices
from .errors import MalformedResponse, ProviderError
from .normalizer import normalize_prices
from .records import (
    TRIGGER_SCHEDULED,
    PriceSet,
    PriceSnapshotBlob,
    parse_iso,
    to_iso,
)

logger = logging.getLogger(__name__)

PRICES_JOB = "prices"


async def load_price_blob(services: PriceCacheServices) -> Optional[PriceSnapshotBlob]:
    data = await services.hot_cache.get_json(services.prices_key)
    if data is None:
        return None
    return PriceSnapshotBlob.from_dict(data)


def _latest_success(previous: Optional[str], candidate: str) -> str:
    """Keep lastSuccessTimestamp non-decreasing even if the clock steps back."""
    if previous is None:
        return candidate
    return candidate if parse_iso(candidate) >= parse_iso(previous) else previous


async def _write_failure(
    services: PriceCacheServices,
    previous: Optional[PriceSnapshotBlob],
    trigger: str,
    message: str,
) -> None:
    blob = PriceSnapshotBlob(
        prices=previous.prices if previous else PriceSet(),
        last_fetch_ok=False,
        last_fetch_error=message,
        last_fetch_timestamp=to_iso(services.now()),
        last_success_timestamp=previous.last_success_timestamp if previous else None,
        trigger=trigger,
        data_hash=previous.data_hash if previous else None,
    )
    await services.hot_cache.put_json(services.prices_key, blob.to_dict())


async def record_price_failure(
    services: PriceCacheServices,
    trigger: str,
    message: str,
) -> None:
    """Flag a failure in the price blob while keeping the last good prices."""
    async with services.lock_for(PRICES_JOB):
        previous = await load_price_blob(services)
        await _write_failure(services, previous, trigger, message)
    logger.warning(f"[Prices] Recorded failure status: {message}")


async def refresh_prices(services: PriceCacheServices, trigger: str = TRIGGER_SCHEDULED) -> bool:
    """Fetch, normalize and store the latest prices.

    Returns True when a new blob was written and False when the data was
    unchanged and the write was skipped. Provider failures are recorded in
    the blob (previous prices kept) and then re-raised.
    """
    settings = services.settings
    async with services.lock_for(PRICES_JOB):
        logger.info(f"[Prices] Starting price refresh (trigger={trigger})")
        previous = await load_price_blob(services)

        try:
            rows = await services.price_provider.fetch_prices(settings.price_limit)
            prices = normalize_prices(rows, updated_at=to_iso(services.now()))
            if prices.count == 0:
                raise MalformedResponse("No usable price records in provider response")
        except ProviderError as e:
            logger.error(f"[Prices] Failed to refresh: {e}")
            await _write_failure(services, previous, trigger, str(e))
            raise

        data_hash = content_hash(prices.by_symbol)
        if previous is not None and previous.last_fetch_ok and previous.data_hash == data_hash:
            logger.info(f"[Prices] Data unchanged (hash {data_hash}), skipping hot cache write")
            return False

        now = to_iso(services.now())
        blob = PriceSnapshotBlob(
            prices=prices,
            last_fetch_ok=True,
            last_fetch_error=None,
            last_fetch_timestamp=now,
            last_success_timestamp=_latest_success(
                previous.last_success_timestamp if previous else None, now
            ),
            trigger=trigger,
            data_hash=data_hash,
        )
        await services.hot_cache.put_json(services.prices_key, blob.to_dict())

    logger.info(f"[Prices] Successfully refreshed {prices.count} coins (hash {data_hash})")
    return True
