"""Tests for the price refresh job.

Covers skip-on-unchanged writes, failure preservation and the monotonic
lastSuccessTimestamp, against a real in-memory hot cache.
"""

import asyncio
import json

import pytest

from price_cache.services.errors import MalformedResponse, ProviderError, RateLimitError
from price_cache.services.price_refresh import (
    load_price_blob,
    record_price_failure,
    refresh_prices,
)
from price_cache.services.records import TRIGGER_MANUAL


async def _blob(services):
    return await services.hot_cache.get_json(services.prices_key)


class TestRefreshPrices:
    """Happy path and change detection."""

    @pytest.mark.asyncio
    async def test_first_refresh_writes_blob(self, services):
        written = await refresh_prices(services)

        assert written is True
        assert services.hot_cache.write_count == 1
        data = await _blob(services)
        assert data["lastFetchOk"] is True
        assert data["lastFetchError"] is None
        assert data["trigger"] == "scheduled"
        assert data["count"] == 3
        assert set(data["bySymbol"]) == {"BTC", "ETH", "SOL"}
        assert data["updatedAt"] == "2026-01-05T09:00:00.000Z"
        assert data["lastSuccessTimestamp"] == "2026-01-05T09:00:00.000Z"
        assert len(data["dataHash"]) == 8

    @pytest.mark.asyncio
    async def test_stored_under_configured_limit(self, services):
        await refresh_prices(services)
        assert services.prices_key == "prices:top500:latest"
        assert await services.hot_cache.get_json("prices:top100:latest") is None

    @pytest.mark.asyncio
    async def test_duplicate_symbols_first_wins(self, services, price_provider):
        price_provider.rows = [
            {"symbol": "BTC", "rank": 1, "price": 65000},
            {"symbol": "BTC", "rank": 2, "price": 1},
        ]
        await refresh_prices(services)

        data = await _blob(services)
        assert data["count"] == 1
        assert data["bySymbol"]["BTC"]["priceUsd"] == 65000.0

    @pytest.mark.asyncio
    async def test_unchanged_data_skips_write(self, services, clock):
        assert await refresh_prices(services) is True
        clock.advance(minutes=5)
        assert await refresh_prices(services) is False
        clock.advance(minutes=5)
        assert await refresh_prices(services) is False

        assert services.hot_cache.write_count == 1
        data = await _blob(services)
        assert data["lastFetchTimestamp"] == "2026-01-05T09:00:00.000Z"

    @pytest.mark.asyncio
    async def test_changed_data_writes(self, services, price_provider, clock):
        await refresh_prices(services)
        first_hash = (await _blob(services))["dataHash"]

        clock.advance(minutes=5)
        price_provider.rows = [dict(price_provider.rows[0], price=66000)] + price_provider.rows[1:]
        assert await refresh_prices(services) is True

        data = await _blob(services)
        assert services.hot_cache.write_count == 2
        assert data["dataHash"] != first_hash
        assert data["bySymbol"]["BTC"]["priceUsd"] == 66000.0
        assert data["lastSuccessTimestamp"] == "2026-01-05T09:05:00.000Z"

    @pytest.mark.asyncio
    async def test_manual_trigger_recorded(self, services):
        await refresh_prices(services, TRIGGER_MANUAL)
        assert (await _blob(services))["trigger"] == "manual"

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_serialize(self, services, price_provider):
        results = await asyncio.gather(refresh_prices(services), refresh_prices(services))

        assert sorted(results) == [False, True]
        assert price_provider.calls == 2
        assert services.hot_cache.write_count == 1


class TestRefreshFailures:
    """Failures are recorded without losing the last good prices."""

    @pytest.mark.asyncio
    async def test_failure_preserves_previous_prices(self, services, price_provider, clock):
        await refresh_prices(services)
        before = await _blob(services)

        clock.advance(minutes=5)
        price_provider.error = ProviderError("CryptoRates API error: 500 Internal Server Error")
        with pytest.raises(ProviderError):
            await refresh_prices(services)

        after = await _blob(services)
        assert json.dumps(after["bySymbol"], sort_keys=True) == json.dumps(before["bySymbol"], sort_keys=True)
        assert after["updatedAt"] == before["updatedAt"]
        assert after["dataHash"] == before["dataHash"]
        assert after["lastFetchOk"] is False
        assert after["lastFetchError"] == "CryptoRates API error: 500 Internal Server Error"
        assert after["lastFetchTimestamp"] == "2026-01-05T09:05:00.000Z"
        assert after["lastSuccessTimestamp"] == before["lastSuccessTimestamp"]

    @pytest.mark.asyncio
    async def test_failure_on_cold_start(self, services, price_provider):
        price_provider.error = RateLimitError("CryptoRates API rate limit exceeded", status=429)
        with pytest.raises(RateLimitError):
            await refresh_prices(services)

        data = await _blob(services)
        assert data["count"] == 0
        assert data["bySymbol"] == {}
        assert data["lastFetchOk"] is False
        assert data["lastSuccessTimestamp"] is None
        assert data["dataHash"] is None

    @pytest.mark.asyncio
    async def test_recovery_with_identical_data_clears_failure(self, services, price_provider, clock):
        await refresh_prices(services)
        price_provider.error = ProviderError("timeout")
        with pytest.raises(ProviderError):
            await refresh_prices(services)

        clock.advance(minutes=5)
        price_provider.error = None
        assert await refresh_prices(services) is True

        data = await _blob(services)
        assert services.hot_cache.write_count == 3
        assert data["lastFetchOk"] is True
        assert data["lastFetchError"] is None
        assert data["lastSuccessTimestamp"] == "2026-01-05T09:05:00.000Z"

    @pytest.mark.asyncio
    async def test_unusable_rows_are_malformed(self, services, price_provider):
        price_provider.rows = [{"name": "no symbol"}]
        with pytest.raises(MalformedResponse):
            await refresh_prices(services)

        data = await _blob(services)
        assert data["lastFetchOk"] is False
        assert "No usable price records" in data["lastFetchError"]

    @pytest.mark.asyncio
    async def test_record_price_failure_keeps_prices(self, services):
        await refresh_prices(services)
        await record_price_failure(services, "scheduled", "R2/object-store not configured")

        blob = await load_price_blob(services)
        assert blob.last_fetch_ok is False
        assert blob.last_fetch_error == "R2/object-store not configured"
        assert blob.prices.count == 3


class TestLastSuccessTimestamp:
    """lastSuccessTimestamp never moves backwards."""

    @pytest.mark.asyncio
    async def test_monotonic_across_sequence(self, services, price_provider, clock):
        seen = []
        for step in range(4):
            price_provider.rows = [{"symbol": "BTC", "price": 100 + step}]
            if step == 2:
                price_provider.error = ProviderError("down")
                with pytest.raises(ProviderError):
                    await refresh_prices(services)
                price_provider.error = None
            else:
                await refresh_prices(services)
            seen.append((await _blob(services))["lastSuccessTimestamp"])
            clock.advance(minutes=5)

        assert seen == sorted(seen)
        assert seen[1] == seen[2]

    @pytest.mark.asyncio
    async def test_clock_stepping_back(self, services, price_provider, clock):
        await refresh_prices(services)

        clock.advance(hours=-1)
        price_provider.rows = [{"symbol": "BTC", "price": 1}]
        assert await refresh_prices(services) is True

        data = await _blob(services)
        assert data["lastSuccessTimestamp"] == "2026-01-05T09:00:00.000Z"
        assert data["lastFetchTimestamp"] == "2026-01-05T08:00:00.000Z"
