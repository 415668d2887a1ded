from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cronwatch.alerting.base import (
    AlertChannel,
    AlertEvent,
    AlertKind,
    ChannelResult,
    DispatchReport,
)
from cronwatch.models.alert_log import AlertLog
from cronwatch.models.base import utcnow
from cronwatch.schemas.alert_log import ChannelType
from cronwatch.services.state_machine import MonitorSnapshot
from cronwatch.utils.exceptions import AlertDeliveryError

logger = structlog.get_logger(__name__)


class AlertDispatcher:
    """
    Fans a down/recovered transition out to every configured channel.

    Each channel attempt is bounded by a timeout and isolated: a failure on
    one channel never prevents another or raises to the caller. One
    AlertLog row is written per attempt.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        email_channel: AlertChannel | None = None,
        webhook_channel: AlertChannel | None = None,
        timeout_seconds: float = 5.0,
        dashboard_url: str | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.email_channel = email_channel
        self.webhook_channel = webhook_channel
        self.timeout_seconds = timeout_seconds
        self.dashboard_url = dashboard_url
        self.clock = clock

    async def send_down_alerts(
        self,
        monitor: MonitorSnapshot,
        owner_email: str | None,
    ) -> DispatchReport:
        """Notify all channels that a monitor went down."""
        return await self._dispatch(AlertKind.DOWN, monitor, owner_email)

    async def send_recovery_alerts(
        self,
        monitor: MonitorSnapshot,
        owner_email: str | None,
    ) -> DispatchReport:
        """Notify all channels that a monitor recovered."""
        return await self._dispatch(AlertKind.RECOVERED, monitor, owner_email)

    async def _dispatch(
        self,
        kind: AlertKind,
        monitor: MonitorSnapshot,
        owner_email: str | None,
    ) -> DispatchReport:
        event = AlertEvent(
            kind=kind,
            monitor=monitor,
            occurred_at=self.clock(),
            dashboard_url=self.dashboard_url,
        )

        attempts: list[tuple[ChannelType, AlertChannel | None, str, str]] = []
        if monitor.alert_email and owner_email:
            label = "Down" if kind == AlertKind.DOWN else "Recovery"
            attempts.append(
                (
                    ChannelType.EMAIL,
                    self.email_channel,
                    owner_email,
                    f"{label} alert to {owner_email}",
                )
            )
        if monitor.webhook_url:
            attempts.append(
                (
                    ChannelType.WEBHOOK,
                    self.webhook_channel,
                    monitor.webhook_url,
                    f"{kind.value} alert webhook",
                )
            )

        if not attempts:
            logger.info(
                "alert_no_channels",
                monitor_id=monitor.id,
                kind=kind.value,
            )
            return DispatchReport()

        results = await asyncio.gather(
            *[
                self._attempt(channel_type, channel, event, target)
                for channel_type, channel, target, _ in attempts
            ]
        )

        await self._write_logs(
            monitor.id,
            [(result, message) for result, (_, _, _, message) in zip(results, attempts)],
        )

        report = DispatchReport(results=list(results))
        logger.info(
            "alert_dispatched",
            monitor_id=monitor.id,
            kind=kind.value,
            channels=[r.channel.value for r in report.results],
            any_succeeded=report.any_succeeded,
            any_failed=report.any_failed,
        )
        return report

    async def _attempt(
        self,
        channel_type: ChannelType,
        channel: AlertChannel | None,
        event: AlertEvent,
        target: str,
    ) -> ChannelResult:
        """Run one channel send and convert every failure into a result."""
        if channel is None:
            return ChannelResult(
                channel=channel_type,
                success=False,
                error=f"{channel_type.value} channel is not configured",
            )

        try:
            await asyncio.wait_for(
                channel.send(event, target),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "alert_channel_timeout",
                monitor_id=event.monitor.id,
                channel=channel_type.value,
                timeout=self.timeout_seconds,
            )
            return ChannelResult(
                channel=channel_type,
                success=False,
                error=f"Timed out after {self.timeout_seconds:g}s",
            )
        except AlertDeliveryError as exc:
            logger.warning(
                "alert_channel_failed",
                monitor_id=event.monitor.id,
                channel=channel_type.value,
                error=exc.reason,
            )
            return ChannelResult(channel=channel_type, success=False, error=exc.reason)
        except Exception as exc:
            logger.error(
                "alert_channel_error",
                monitor_id=event.monitor.id,
                channel=channel_type.value,
                error=str(exc),
                exc_info=True,
            )
            return ChannelResult(
                channel=channel_type,
                success=False,
                error=str(exc) or exc.__class__.__name__,
            )

        return ChannelResult(channel=channel_type, success=True)

    async def _write_logs(
        self,
        monitor_id: int,
        entries: list[tuple[ChannelResult, str]],
    ) -> None:
        sent_at = self.clock()
        try:
            async with self.session_factory() as db:
                for result, message in entries:
                    db.add(
                        AlertLog(
                            monitor_id=monitor_id,
                            alert_type=result.channel.value,
                            message=message,
                            success=result.success,
                            error=result.error,
                            sent_at=sent_at,
                        )
                    )
                await db.commit()
        except SQLAlchemyError as exc:
            # Audit rows are best effort; delivery already happened.
            logger.error(
                "alert_log_write_failed",
                monitor_id=monitor_id,
                error=str(exc),
            )
