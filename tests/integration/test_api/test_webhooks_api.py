"""Integration tests for /api/v1/webhooks/test."""
from __future__ import annotations

import pytest
from httpx import AsyncClient

URL = "/api/v1/webhooks/test"


@pytest.mark.integration
async def test_webhook_test_success(
    client: AsyncClient, sample_user, webhook_channel, public_dns
) -> None:
    resp = await client.post(
        URL,
        headers={"X-User-Id": str(sample_user.id)},
        json={"webhook_url": "https://hooks.example.com/try"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert webhook_channel.tests == ["https://hooks.example.com/try"]


@pytest.mark.integration
async def test_webhook_test_blocked(client: AsyncClient, sample_user, webhook_channel) -> None:
    resp = await client.post(
        URL,
        headers={"X-User-Id": str(sample_user.id)},
        json={"webhook_url": "http://169.254.169.254/latest/meta-data"},
    )

    assert resp.status_code == 400
    assert webhook_channel.tests == []


@pytest.mark.integration
async def test_webhook_test_delivery_failure(
    client: AsyncClient, sample_user, webhook_channel, public_dns
) -> None:
    webhook_channel.fail_with = "Webhook returned 500: boom"

    resp = await client.post(
        URL,
        headers={"X-User-Id": str(sample_user.id)},
        json={"webhook_url": "https://hooks.example.com/try"},
    )

    assert resp.status_code == 422
    data = resp.json()
    assert data["success"] is False
    assert "500" in data["error"]


@pytest.mark.integration
async def test_webhook_test_requires_user(client: AsyncClient) -> None:
    resp = await client.post(URL, json={"webhook_url": "https://hooks.example.com/try"})
    assert resp.status_code == 401
