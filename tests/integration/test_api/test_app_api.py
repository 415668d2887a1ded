"""Integration tests for the service-level endpoints."""
from __future__ import annotations

import pytest
from httpx import AsyncClient


@pytest.mark.integration
async def test_health(client: AsyncClient, clock) -> None:
    resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "no-store"
    data = resp.json()
    assert data["status"] == "ok"
    assert data["service"] == "cronwatch"
    assert data["timestamp"].startswith(clock.now.strftime("%Y-%m-%dT%H:%M"))


@pytest.mark.integration
async def test_root(client: AsyncClient) -> None:
    resp = await client.get("/")
    assert resp.status_code == 200
