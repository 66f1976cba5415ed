"""Tests for the scheduled ticks and the job runner."""

import logging

import pytest

from price_cache.services.cold_store import REGISTRY_OBJECT_KEY, price_snapshot_key
from price_cache.services.errors import ProviderError, StorageUnavailable
from price_cache.services.price_refresh import load_price_blob, refresh_prices
from price_cache.services.scheduler import (
    DAILY_JOB_ID,
    MANUAL_JOBS,
    PRICE_JOB_ID,
    RefreshScheduler,
    run_daily_tick,
    run_logged,
)


class TestDailyTick:

    @pytest.mark.asyncio
    async def test_snapshot_then_registry(self, services, cold_store, metadata_provider):
        await refresh_prices(services)

        await run_daily_tick(services)

        assert await cold_store.exists(price_snapshot_key(500, "2026-01-05"))
        assert await cold_store.exists(REGISTRY_OBJECT_KEY)
        assert metadata_provider.calls == 1

    @pytest.mark.asyncio
    async def test_missing_cold_store_records_failure(self, hot_only_services, metadata_provider):
        """Without a cold store the tick flags the failure and skips the registry."""
        await refresh_prices(hot_only_services)

        with pytest.raises(StorageUnavailable):
            await run_daily_tick(hot_only_services)

        blob = await load_price_blob(hot_only_services)
        assert blob.last_fetch_ok is False
        assert "R2/object-store not configured" in blob.last_fetch_error
        assert blob.prices.count == 3
        assert metadata_provider.calls == 0

    @pytest.mark.asyncio
    async def test_registry_failure_propagates(self, services, metadata_provider, cold_store):
        await refresh_prices(services)
        metadata_provider.error = ProviderError("CoinGecko API error: 503")

        with pytest.raises(ProviderError):
            await run_daily_tick(services)

        # The snapshot already went out
        assert await cold_store.exists(price_snapshot_key(500, "2026-01-05"))
        blob = await load_price_blob(services)
        assert blob.last_fetch_ok is True


class TestRunLogged:

    @pytest.mark.asyncio
    async def test_success(self, services):
        assert await run_logged("refresh-prices", MANUAL_JOBS["refresh-prices"], services) is True
        assert (await load_price_blob(services)).trigger == "manual"

    @pytest.mark.asyncio
    async def test_failure_logged_not_raised(self, services, price_provider, caplog):
        price_provider.error = ProviderError("boom")

        with caplog.at_level(logging.ERROR):
            result = await run_logged("refresh-prices", MANUAL_JOBS["refresh-prices"], services)

        assert result is False
        assert "refresh-prices failed (trigger=manual)" in caplog.text


class TestRefreshScheduler:

    @pytest.mark.asyncio
    async def test_disabled_never_starts(self, services):
        scheduler = RefreshScheduler(services, enabled=False)
        scheduler.start()

        assert scheduler.running is False
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_registers_both_jobs(self, services):
        scheduler = RefreshScheduler(services, price_cron="*/5 * * * *", daily_cron="0 9 * * *")
        scheduler.start()
        try:
            assert scheduler.running is True
            price_job = scheduler._scheduler.get_job(PRICE_JOB_ID)
            daily_job = scheduler._scheduler.get_job(DAILY_JOB_ID)
            assert price_job is not None
            assert daily_job is not None
            assert price_job.max_instances == 1
            assert daily_job.coalesce is True
        finally:
            scheduler.shutdown()

        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_price_tick_swallows_failure(self, services, price_provider):
        scheduler = RefreshScheduler(services, enabled=False)
        price_provider.error = ProviderError("down")

        assert await scheduler.price_tick() is False
        blob = await load_price_blob(services)
        assert blob.trigger == "scheduled"
        assert blob.last_fetch_ok is False

    @pytest.mark.asyncio
    async def test_daily_tick_runs_both_jobs(self, services, cold_store):
        scheduler = RefreshScheduler(services, enabled=False)
        await scheduler.price_tick()

        assert await scheduler.daily_tick() is True
        assert await cold_store.exists(REGISTRY_OBJECT_KEY)
