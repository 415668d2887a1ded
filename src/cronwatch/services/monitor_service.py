from __future__ import annotations

import secrets
from datetime import datetime
from typing import Callable

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cronwatch.models.alert_log import AlertLog
from cronwatch.models.base import utcnow
from cronwatch.models.monitor import Monitor
from cronwatch.models.ping import Ping
from cronwatch.schemas.monitor import MonitorCreate, MonitorStatus, MonitorUpdate
from cronwatch.services.state_machine import next_expected_after, status_for_pause
from cronwatch.utils.exceptions import QuotaExceededError
from cronwatch.utils.ssrf import validate_url_not_internal

logger = structlog.get_logger(__name__)


def generate_slug(nbytes: int = 12) -> str:
    """Random URL-safe ping slug; 12 bytes gives 16 characters."""
    return secrets.token_urlsafe(nbytes)


class MonitorService:
    """Business logic for monitor management. Every lookup is owner-scoped."""

    def __init__(
        self,
        db: AsyncSession,
        max_monitors_per_user: int = 20,
        slug_bytes: int = 12,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.max_monitors_per_user = max_monitors_per_user
        self.slug_bytes = slug_bytes
        self.clock = clock

    async def count_monitors(self, user_id: int) -> int:
        stmt = select(func.count(Monitor.id)).where(Monitor.user_id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def create_monitor(self, user_id: int, data: MonitorCreate) -> Monitor:
        """
        Create a new monitor.

        Args:
            user_id: Owner ID
            data: Monitor creation data

        Returns:
            Created monitor in status `new`

        Raises:
            QuotaExceededError: The user already owns the maximum number
            UnsafeURLError: The webhook URL targets internal infrastructure
        """
        if await self.count_monitors(user_id) >= self.max_monitors_per_user:
            raise QuotaExceededError(user_id, self.max_monitors_per_user)

        webhook_url = str(data.webhook_url) if data.webhook_url else None
        if webhook_url:
            await validate_url_not_internal(webhook_url)

        monitor = Monitor(
            user_id=user_id,
            slug=generate_slug(self.slug_bytes),
            name=data.name,
            interval_seconds=data.interval_seconds,
            grace_seconds=data.grace_seconds,
            status=MonitorStatus.NEW.value,
            alert_email=data.alert_email,
            webhook_url=webhook_url,
            is_paused=False,
        )
        self.db.add(monitor)
        await self.db.flush()
        await self.db.refresh(monitor)

        logger.info(
            "monitor_created",
            monitor_id=monitor.id,
            user_id=user_id,
            interval_seconds=monitor.interval_seconds,
            grace_seconds=monitor.grace_seconds,
        )
        return monitor

    async def get_monitor(self, user_id: int, monitor_id: int) -> Monitor | None:
        """
        Get a monitor owned by `user_id`.

        Returns:
            Monitor if found and owned, None otherwise
        """
        stmt = select(Monitor).where(
            Monitor.id == monitor_id,
            Monitor.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_monitors(self, user_id: int) -> tuple[list[Monitor], int]:
        """List a user's monitors, newest first."""
        stmt = (
            select(Monitor)
            .where(Monitor.user_id == user_id)
            .order_by(Monitor.created_at.desc(), Monitor.id.desc())
        )
        result = await self.db.execute(stmt)
        monitors = list(result.scalars().all())
        return monitors, len(monitors)

    async def update_monitor(
        self,
        user_id: int,
        monitor_id: int,
        data: MonitorUpdate,
    ) -> Monitor | None:
        """
        Update a monitor's mutable fields.

        Setting `is_paused` also moves the status: pausing parks the monitor
        in `paused`, unpausing restarts it from `new` with the incident key
        cleared. A monitor that has been pinged before gets a fresh deadline
        one interval from now.

        Returns:
            Updated monitor if found, None otherwise

        Raises:
            UnsafeURLError: The new webhook URL targets internal infrastructure
        """
        monitor = await self.get_monitor(user_id, monitor_id)
        if monitor is None:
            return None

        changes = data.model_dump(exclude_unset=True)

        if changes.get("webhook_url") is not None:
            changes["webhook_url"] = str(changes["webhook_url"])
            await validate_url_not_internal(changes["webhook_url"])

        # Only webhook_url may be cleared with an explicit null.
        for key in ("name", "is_paused", "alert_email"):
            if key in changes and changes[key] is None:
                del changes[key]

        for key, value in changes.items():
            setattr(monitor, key, value)

        if "is_paused" in changes:
            monitor.status = status_for_pause(monitor.is_paused).value
            if not monitor.is_paused:
                monitor.last_alert_at = None
                if monitor.last_ping_at is not None:
                    monitor.next_expected_at = next_expected_after(
                        self.clock(), monitor.interval_seconds
                    )

        await self.db.flush()
        await self.db.refresh(monitor)

        logger.info(
            "monitor_updated",
            monitor_id=monitor.id,
            fields=sorted(changes),
            status=monitor.status,
        )
        return monitor

    async def delete_monitor(self, user_id: int, monitor_id: int) -> bool:
        """
        Delete a monitor and its history.

        Returns:
            True if deleted, False if not found
        """
        monitor = await self.get_monitor(user_id, monitor_id)
        if monitor is None:
            return False

        await self.db.execute(delete(Ping).where(Ping.monitor_id == monitor.id))
        await self.db.execute(delete(AlertLog).where(AlertLog.monitor_id == monitor.id))
        await self.db.delete(monitor)
        await self.db.flush()

        logger.info("monitor_deleted", monitor_id=monitor_id, user_id=user_id)
        return True

    async def list_pings(
        self,
        user_id: int,
        monitor_id: int,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[Ping], int] | None:
        """
        Ping history for a monitor, newest first.

        Returns:
            (pings, total), or None if the monitor is not found
        """
        if await self.get_monitor(user_id, monitor_id) is None:
            return None

        total_result = await self.db.execute(
            select(func.count(Ping.id)).where(Ping.monitor_id == monitor_id)
        )
        total = total_result.scalar() or 0

        stmt = (
            select(Ping)
            .where(Ping.monitor_id == monitor_id)
            .order_by(Ping.received_at.desc(), Ping.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def list_alert_logs(
        self,
        user_id: int,
        monitor_id: int,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[AlertLog], int] | None:
        """Alert delivery history for a monitor, newest first."""
        if await self.get_monitor(user_id, monitor_id) is None:
            return None

        total_result = await self.db.execute(
            select(func.count(AlertLog.id)).where(AlertLog.monitor_id == monitor_id)
        )
        total = total_result.scalar() or 0

        stmt = (
            select(AlertLog)
            .where(AlertLog.monitor_id == monitor_id)
            .order_by(AlertLog.sent_at.desc(), AlertLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total
