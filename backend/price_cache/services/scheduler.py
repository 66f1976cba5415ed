"""Cron-driven execution of the refresh jobs.

Two cadences: a short one for prices and a daily one that archives the
price snapshot and then refreshes the registry. Each job runs at most once
at a time (``max_instances=1`` plus the per-job locks on the services).
"""

import logging
from datetime import timezone
from typing import Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .container import PriceCacheServices
from .errors import PriceCacheError
from .price_refresh import record_price_failure, refresh_prices
from .records import TRIGGER_MANUAL, TRIGGER_SCHEDULED
from .registry_sync import refresh_registry
from .snapshot_writer import write_daily_snapshot

logger = logging.getLogger(__name__)

PRICE_JOB_ID = "price_refresh"
DAILY_JOB_ID = "daily_snapshot_and_registry"

JobFunc = Callable[[PriceCacheServices, str], Awaitable[object]]


async def run_daily_tick(services: PriceCacheServices, trigger: str = TRIGGER_SCHEDULED) -> None:
    """Archive prices, then refresh the registry.

    A failed snapshot is recorded in the price blob status and re-raised,
    and the registry refresh is not attempted.
    """
    try:
        await write_daily_snapshot(services, trigger)
    except (PriceCacheError, OSError) as e:
        await record_price_failure(services, trigger, str(e))
        raise
    await refresh_registry(services, trigger)


# Jobs operators can start by hand through the admin routes
MANUAL_JOBS: Dict[str, JobFunc] = {
    "refresh-prices": refresh_prices,
    "refresh-registry": refresh_registry,
    "write-snapshot": write_daily_snapshot,
}


async def run_logged(
    job_name: str,
    job: JobFunc,
    services: PriceCacheServices,
    trigger: str = TRIGGER_MANUAL,
) -> bool:
    """Run a job to completion and log its outcome.

    This is the outermost boundary for background runs, so failures are
    logged with traceback here instead of propagating into the event loop.
    """
    try:
        await job(services, trigger)
    except Exception:
        logger.exception(f"[Jobs] {job_name} failed (trigger={trigger})")
        return False
    logger.info(f"[Jobs] {job_name} completed (trigger={trigger})")
    return True


class RefreshScheduler:
    """Owns the APScheduler instance for the two refresh cadences."""

    def __init__(
        self,
        services: PriceCacheServices,
        price_cron: str = "*/5 * * * *",
        daily_cron: str = "0 9 * * *",
        enabled: bool = True,
    ):
        self.services = services
        self.price_cron = price_cron
        self.daily_cron = daily_cron
        self.enabled = enabled
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Register both jobs and start the scheduler on the running loop."""
        if not self.enabled:
            logger.info("Scheduler disabled by configuration")
            return
        if self.running:
            logger.debug("Scheduler already running")
            return

        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self.price_tick,
            trigger=CronTrigger.from_crontab(self.price_cron, timezone=timezone.utc),
            id=PRICE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.daily_tick,
            trigger=CronTrigger.from_crontab(self.daily_cron, timezone=timezone.utc),
            id=DAILY_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"Scheduler started (prices: '{self.price_cron}', daily: '{self.daily_cron}' UTC)")

    def shutdown(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self._scheduler = None

    async def price_tick(self) -> bool:
        return await run_logged(PRICE_JOB_ID, refresh_prices, self.services, TRIGGER_SCHEDULED)

    async def daily_tick(self) -> bool:
        return await run_logged(DAILY_JOB_ID, run_daily_tick, self.services, TRIGGER_SCHEDULED)
