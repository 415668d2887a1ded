from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cronwatch.models.base import utcnow
from cronwatch.models.monitor import Monitor
from cronwatch.schemas.monitor import MonitorStatus
from cronwatch.services.state_machine import (
    SWEEPABLE_STATUSES,
    MonitorSnapshot,
    evaluate,
)
from cronwatch.utils.exceptions import MonitoringException, StorageError

if TYPE_CHECKING:
    from cronwatch.alerting.base import DispatchReport
    from cronwatch.alerting.dispatcher import AlertDispatcher
    from cronwatch.services.owner_directory import OwnerDirectory

logger = structlog.get_logger(__name__)


@dataclass
class SweepResult:
    """Counters for one sweep pass."""

    checked: int = 0
    alerted: int = 0
    recovered: int = 0
    deferred: int = 0
    errors: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class _MonitorOutcome:
    alerted: bool = False
    deferred: bool = False
    errors: list[str] = field(default_factory=list)


class SweepService:
    """
    Periodic deadline sweep.

    Every active monitor is evaluated against the same instant. Transitions
    are written with conditional updates so that overlapping sweeps, or a
    ping racing the sweep, can never claim the same incident twice. Only the
    claim winner dispatches the down alert.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: AlertDispatcher,
        owner_directory: OwnerDirectory,
        concurrency: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.owner_directory = owner_directory
        self.concurrency = concurrency
        self.clock = clock

    async def run_sweep(self, budget_seconds: float | None = None) -> SweepResult:
        """
        Evaluate all active monitors once.

        Args:
            budget_seconds: Wall-clock budget. Monitors not started before it
                runs out are deferred to the next sweep.

        Returns:
            SweepResult with per-sweep counters and collected errors

        Raises:
            StorageError: If the monitor list could not be loaded
        """
        sweep_id = uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(sweep_id=sweep_id)
        try:
            return await self._run(budget_seconds)
        finally:
            structlog.contextvars.unbind_contextvars("sweep_id")

    async def _run(self, budget_seconds: float | None) -> SweepResult:
        now = self.clock()
        snapshots = await self._load_active_monitors()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + budget_seconds if budget_seconds is not None else None
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(snapshot: MonitorSnapshot) -> _MonitorOutcome:
            async with semaphore:
                if deadline is not None and loop.time() >= deadline:
                    return _MonitorOutcome(deferred=True)
                return await self._process_monitor(snapshot, now)

        logger.info("sweep_started", monitor_count=len(snapshots))

        outcomes = await asyncio.gather(*[guarded(s) for s in snapshots])

        result = SweepResult(checked=len(snapshots), timestamp=now)
        for outcome in outcomes:
            if outcome.deferred:
                result.deferred += 1
            if outcome.alerted:
                result.alerted += 1
            result.errors.extend(outcome.errors)

        logger.info(
            "sweep_completed",
            checked=result.checked,
            alerted=result.alerted,
            deferred=result.deferred,
            error_count=len(result.errors),
        )
        return result

    async def _load_active_monitors(self) -> list[MonitorSnapshot]:
        stmt = select(Monitor).where(
            Monitor.is_paused == False,  # noqa: E712
            Monitor.status.in_([s.value for s in SWEEPABLE_STATUSES]),
        )
        try:
            async with self.session_factory() as db:
                result = await db.execute(stmt)
                return [MonitorSnapshot.from_model(m) for m in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.error("sweep_load_failed", error=str(exc))
            raise StorageError("monitor load", str(exc)) from exc

    async def _process_monitor(
        self,
        snapshot: MonitorSnapshot,
        now: datetime,
    ) -> _MonitorOutcome:
        """Apply one monitor's transition. Never raises."""
        outcome = _MonitorOutcome()
        try:
            decision = evaluate(snapshot, now)
            if decision.skipped or not decision.changes_state:
                return outcome

            if decision.new_status == MonitorStatus.GRACE:
                await self._enter_grace(snapshot)
                return outcome

            if decision.alert:
                await self._alert_down(snapshot, now, outcome)

        except Exception as exc:
            msg = str(exc) or exc.__class__.__name__
            outcome.errors.append(f"Error checking monitor {snapshot.id}: {msg}")
            logger.error(
                "sweep_monitor_failed",
                monitor_id=snapshot.id,
                error=msg,
                exc_info=True,
            )
        return outcome

    async def _enter_grace(self, snapshot: MonitorSnapshot) -> bool:
        stmt = (
            update(Monitor)
            .where(
                Monitor.id == snapshot.id,
                Monitor.is_paused == False,  # noqa: E712
                Monitor.status == snapshot.status.value,
                Monitor.next_expected_at == snapshot.next_expected_at,
            )
            .values(status=MonitorStatus.GRACE.value)
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()

        moved = result.rowcount == 1
        if moved:
            logger.info("monitor_entered_grace", monitor_id=snapshot.id)
        return moved

    async def _claim_incident(self, snapshot: MonitorSnapshot, now: datetime) -> bool:
        """
        Mark the monitor down and stamp `last_alert_at` in one statement.

        Returns True only for the caller whose update matched, which makes
        that caller the sole sender for the incident.
        """
        stmt = (
            update(Monitor)
            .where(
                Monitor.id == snapshot.id,
                Monitor.is_paused == False,  # noqa: E712
                Monitor.next_expected_at == snapshot.next_expected_at,
                or_(
                    Monitor.status != MonitorStatus.DOWN.value,
                    Monitor.last_alert_at.is_(None),
                ),
            )
            .values(status=MonitorStatus.DOWN.value, last_alert_at=now)
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
        return result.rowcount == 1

    async def _alert_down(
        self,
        snapshot: MonitorSnapshot,
        now: datetime,
        outcome: _MonitorOutcome,
    ) -> None:
        owner_email = None
        try:
            owner_email = await self.owner_directory.get_email(snapshot.user_id)
        except MonitoringException as exc:
            outcome.errors.append(f"Error checking monitor {snapshot.id}: {exc}")

        if not await self._claim_incident(snapshot, now):
            logger.info("incident_already_claimed", monitor_id=snapshot.id)
            return

        logger.warning(
            "monitor_down",
            monitor_id=snapshot.id,
            monitor_name=snapshot.name,
            next_expected_at=snapshot.next_expected_at.isoformat(),
        )

        report: DispatchReport = await self.dispatcher.send_down_alerts(snapshot, owner_email)
        if not report.attempted:
            return

        outcome.alerted = True
        if report.any_failed:
            details = ", ".join(
                f"{r.channel.value}: {r.error}" for r in report.failures
            )
            outcome.errors.append(
                f"Alert partially failed for monitor {snapshot.name}: {details}"
            )
