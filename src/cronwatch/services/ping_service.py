from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cronwatch.models.base import utcnow
from cronwatch.models.monitor import Monitor
from cronwatch.models.ping import Ping
from cronwatch.schemas.monitor import MonitorStatus
from cronwatch.services.state_machine import (
    MonitorSnapshot,
    next_expected_after,
    status_after_ping,
)
from cronwatch.utils.exceptions import (
    InvalidSlugError,
    MonitorNotFoundError,
    StorageError,
)

if TYPE_CHECKING:
    from cronwatch.alerting.base import DispatchReport
    from cronwatch.alerting.dispatcher import AlertDispatcher
    from cronwatch.services.owner_directory import OwnerDirectory

logger = structlog.get_logger(__name__)

MAX_USER_AGENT_LENGTH = 1000


@dataclass(frozen=True)
class PingOutcome:
    """Result of recording one ping."""

    slug: str
    pinged_at: datetime
    next_expected_at: datetime
    status: MonitorStatus
    recovered: bool
    monitor: MonitorSnapshot


class PingService:
    """Ping ingest: records liveness and advances the monitor's deadline."""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: AlertDispatcher | None = None,
        owner_directory: OwnerDirectory | None = None,
        min_slug_length: int = 8,
        recovery_timeout_seconds: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.owner_directory = owner_directory
        self.min_slug_length = min_slug_length
        self.recovery_timeout_seconds = recovery_timeout_seconds
        self.clock = clock

    async def record_ping(
        self,
        slug: str,
        source_ip: str | None = None,
        user_agent: str | None = None,
    ) -> PingOutcome:
        """
        Record a ping for the monitor identified by `slug`.

        The ping row and the monitor update are committed together.

        Args:
            slug: Public monitor slug
            source_ip: Caller IP
            user_agent: Caller user agent

        Returns:
            PingOutcome with the new deadline and whether the monitor recovered

        Raises:
            InvalidSlugError: Slug is shorter than the minimum length
            MonitorNotFoundError: No monitor has this slug
            StorageError: Lookup or write failed
        """
        if not slug or len(slug) < self.min_slug_length:
            raise InvalidSlugError(slug)

        try:
            result = await self.db.execute(select(Monitor).where(Monitor.slug == slug))
            monitor = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("monitor lookup", str(exc)) from exc

        if monitor is None:
            raise MonitorNotFoundError(slug)

        monitor_id = monitor.id
        now = self.clock()
        was_down = monitor.status == MonitorStatus.DOWN.value
        next_expected_at = next_expected_after(now, monitor.interval_seconds)
        new_status = status_after_ping(monitor.is_paused)

        self.db.add(
            Ping(
                monitor_id=monitor_id,
                received_at=now,
                source_ip=source_ip,
                user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
            )
        )
        monitor.last_ping_at = now
        monitor.next_expected_at = next_expected_at
        monitor.status = new_status.value
        if was_down:
            # New incident may alert again.
            monitor.last_alert_at = None

        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                "ping_record_failed",
                monitor_id=monitor_id,
                error=str(exc),
            )
            raise StorageError("ping record", str(exc)) from exc

        snapshot = MonitorSnapshot.from_model(monitor)

        logger.info(
            "ping_recorded",
            monitor_id=monitor.id,
            status=new_status.value,
            next_expected_at=next_expected_at.isoformat(),
            recovered=was_down,
        )

        return PingOutcome(
            slug=slug,
            pinged_at=now,
            next_expected_at=next_expected_at,
            status=new_status,
            recovered=was_down,
            monitor=snapshot,
        )

    async def notify_recovery(self, monitor: MonitorSnapshot) -> DispatchReport | None:
        """
        Send recovery alerts for a monitor that just left `down`.

        Runs off the request path. Bounded by `recovery_timeout_seconds`;
        failures are logged, never raised.
        """
        if self.dispatcher is None:
            return None

        try:
            return await asyncio.wait_for(
                self._send_recovery(monitor),
                timeout=self.recovery_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "recovery_alert_timeout",
                monitor_id=monitor.id,
                timeout=self.recovery_timeout_seconds,
            )
        except Exception as exc:
            logger.error(
                "recovery_alert_failed",
                monitor_id=monitor.id,
                error=str(exc) or exc.__class__.__name__,
                exc_info=True,
            )
        return None

    async def _send_recovery(self, monitor: MonitorSnapshot) -> DispatchReport:
        owner_email = None
        if self.owner_directory is not None:
            owner_email = await self.owner_directory.get_email(monitor.user_id)
        return await self.dispatcher.send_recovery_alerts(monitor, owner_email)
