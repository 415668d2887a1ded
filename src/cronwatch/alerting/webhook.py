from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from cronwatch.alerting.base import (
    AlertChannel,
    AlertEvent,
    format_interval,
    format_last_ping,
)
from cronwatch.schemas.alert_log import ChannelType
from cronwatch.utils.exceptions import AlertDeliveryError, UnsafeURLError
from cronwatch.utils.ssrf import validate_url_not_internal

logger = structlog.get_logger(__name__)

DOWN_COLOR = 0xEF4444
RECOVERED_COLOR = 0x22C55E


def build_alert_payload(event: AlertEvent) -> dict[str, Any]:
    """
    Build a chat-webhook body.

    `text` is read by Slack-style consumers, `embeds` by Discord-style ones.
    """
    monitor = event.monitor
    status = "DOWN" if event.is_down else "RECOVERED"
    description = (
        "Monitor has not received a ping within the expected window."
        if event.is_down
        else "Monitor is back online and pinging normally."
    )
    return {
        "text": f"[cronwatch] Monitor {status}: {monitor.name}",
        "status": event.kind.value,
        "monitor": monitor.name,
        "interval_seconds": monitor.interval_seconds,
        "last_ping_at": (
            monitor.last_ping_at.isoformat() if monitor.last_ping_at else None
        ),
        "embeds": [
            {
                "title": f"{status}: {monitor.name}",
                "description": description,
                "color": DOWN_COLOR if event.is_down else RECOVERED_COLOR,
                "fields": [
                    {"name": "Monitor", "value": monitor.name, "inline": True},
                    {
                        "name": "Expected",
                        "value": format_interval(monitor.interval_seconds),
                        "inline": True,
                    },
                    {
                        "name": "Last Ping",
                        "value": format_last_ping(monitor.last_ping_at),
                        "inline": False,
                    },
                ],
                "footer": {"text": "cronwatch"},
                "timestamp": event.occurred_at.isoformat(),
            }
        ],
    }


def build_test_payload(now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "text": "[cronwatch] Test webhook: your integration is working!",
        "embeds": [
            {
                "title": "Webhook Test Successful",
                "description": "This is a test notification from cronwatch.",
                "color": RECOVERED_COLOR,
                "footer": {"text": "cronwatch"},
                "timestamp": now.isoformat(),
            }
        ],
    }


class WebhookAlertChannel(AlertChannel):
    """Send alerts via HTTP webhook. The URL comes from each monitor."""

    channel_type = ChannelType.WEBHOOK

    def __init__(self, timeout: float = 5.0, guard_urls: bool = True):
        self.timeout = timeout
        self.guard_urls = guard_urls

    def validate_config(self) -> bool:
        """Validate webhook configuration."""
        return self.timeout > 0

    async def send(self, event: AlertEvent, target: str) -> None:
        """
        Send alert to a webhook URL.

        Args:
            event: Alert data to send
            target: Webhook URL

        Raises:
            AlertDeliveryError: On blocked URL, non-2xx response or network error
        """
        await self.post(target, build_alert_payload(event), monitor_id=event.monitor.id)

    async def send_test(self, url: str) -> None:
        """Send a test notification to a webhook URL."""
        await self.post(url, build_test_payload())

    async def post(
        self,
        url: str,
        payload: dict[str, Any],
        monitor_id: int | None = None,
    ) -> None:
        if not url:
            raise AlertDeliveryError("webhook", "No webhook URL configured", monitor_id)

        if self.guard_urls:
            # Re-checked at send time: DNS can change after creation.
            try:
                await validate_url_not_internal(url)
            except UnsafeURLError as exc:
                raise AlertDeliveryError("webhook", exc.reason, monitor_id) from exc

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=False,
            ) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()

        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:200] if exc.response is not None else ""
            status_code = exc.response.status_code if exc.response is not None else None
            logger.error(
                "webhook_alert_failed",
                webhook_url=url,
                status_code=status_code,
            )
            raise AlertDeliveryError(
                "webhook",
                f"Webhook returned {status_code}: {body}",
                monitor_id,
            ) from exc

        except httpx.HTTPError as exc:
            logger.error(
                "webhook_alert_failed",
                webhook_url=url,
                error=str(exc),
            )
            raise AlertDeliveryError(
                "webhook", str(exc) or exc.__class__.__name__, monitor_id
            ) from exc

        logger.info(
            "webhook_alert_sent",
            webhook_url=url,
            status_code=response.status_code,
        )
