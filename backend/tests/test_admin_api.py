"""Tests for the admin job routes.

Background tasks complete before the test client returns, so the job's
effects can be asserted right after the request.
"""

import pytest

from price_cache.services.cold_store import price_snapshot_key
from price_cache.services.hot_cache import REGISTRY_KEY
from price_cache.services.price_refresh import load_price_blob


@pytest.mark.asyncio
async def test_refresh_prices(client, services):
    response = await client.post("/admin/refresh-prices")
    assert response.status_code == 202
    assert response.json() == {"status": "started", "job": "refresh-prices", "trigger": "manual"}

    blob = await load_price_blob(services)
    assert blob.last_fetch_ok is True
    assert blob.trigger == "manual"


@pytest.mark.asyncio
async def test_refresh_registry(client, hot_cache):
    response = await client.post("/admin/refresh-registry")
    assert response.status_code == 202
    assert response.json()["job"] == "refresh-registry"

    assert (await hot_cache.get_json(REGISTRY_KEY))["count"] == 3


@pytest.mark.asyncio
async def test_write_snapshot(client, cold_store):
    await client.post("/admin/refresh-prices")

    response = await client.post("/admin/write-snapshot")
    assert response.status_code == 202
    assert await cold_store.exists(price_snapshot_key(500, "2026-01-05"))


@pytest.mark.asyncio
async def test_job_failure_still_accepted(client, services, price_provider):
    """The route only queues the job; a crashing job is logged by the runner."""
    price_provider.error = RuntimeError("unexpected")

    response = await client.post("/admin/refresh-prices")
    assert response.status_code == 202
    assert await load_price_blob(services) is None


@pytest.mark.asyncio
async def test_write_snapshot_without_cold_store(client, services):
    services.cold_store = None

    response = await client.post("/admin/write-snapshot")
    assert response.status_code == 202


@pytest.mark.asyncio
async def test_admin_get_not_allowed(client):
    response = await client.get("/admin/refresh-prices")
    assert response.status_code == 405
