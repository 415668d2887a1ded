"""
Monitor state machine.

Pure transition rules shared by ping ingest and the sweep. Nothing here
touches storage; callers load a `MonitorSnapshot`, ask for a decision and
persist it themselves.

    new -> up <-> grace -> down -> up (ping only)

`paused` overlays any state and is excluded from the sweep.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from cronwatch.models.monitor import Monitor
from cronwatch.schemas.monitor import MonitorStatus

SWEEPABLE_STATUSES = (
    MonitorStatus.NEW,
    MonitorStatus.UP,
    MonitorStatus.GRACE,
    MonitorStatus.DOWN,
)


@dataclass(frozen=True)
class MonitorSnapshot:
    """Immutable copy of the monitor fields the core reads."""

    id: int
    user_id: int
    slug: str
    name: str
    interval_seconds: int
    grace_seconds: int
    status: MonitorStatus
    is_paused: bool
    alert_email: bool
    webhook_url: str | None = None
    last_ping_at: datetime | None = None
    next_expected_at: datetime | None = None
    last_alert_at: datetime | None = None

    @classmethod
    def from_model(cls, monitor: Monitor) -> MonitorSnapshot:
        return cls(
            id=monitor.id,
            user_id=monitor.user_id,
            slug=monitor.slug,
            name=monitor.name,
            interval_seconds=monitor.interval_seconds,
            grace_seconds=monitor.grace_seconds,
            status=MonitorStatus(monitor.status),
            is_paused=monitor.is_paused,
            alert_email=monitor.alert_email,
            webhook_url=monitor.webhook_url,
            last_ping_at=monitor.last_ping_at,
            next_expected_at=monitor.next_expected_at,
            last_alert_at=monitor.last_alert_at,
        )

    @property
    def grace_deadline(self) -> datetime | None:
        if self.next_expected_at is None:
            return None
        return self.next_expected_at + timedelta(seconds=self.grace_seconds)


@dataclass(frozen=True)
class SweepDecision:
    """Outcome of evaluating one monitor at one instant."""

    new_status: MonitorStatus | None = None
    alert: bool = False
    skipped: bool = False

    @property
    def changes_state(self) -> bool:
        return self.new_status is not None or self.alert


NO_CHANGE = SweepDecision()
SKIP = SweepDecision(skipped=True)


def evaluate(monitor: MonitorSnapshot, now: datetime) -> SweepDecision:
    """
    Decide the sweep transition for a monitor.

    Deadlines are inclusive: `now >= next_expected_at` enters grace and
    `now >= next_expected_at + grace` enters down.

    Args:
        monitor: Snapshot loaded by the sweep
        now: Evaluation instant (aware UTC)

    Returns:
        SweepDecision describing the target status and whether to alert
    """
    if monitor.is_paused or monitor.status == MonitorStatus.PAUSED:
        return SKIP

    if monitor.status == MonitorStatus.NEW and monitor.last_ping_at is None:
        return SKIP

    if monitor.next_expected_at is None:
        return SKIP

    if now < monitor.next_expected_at:
        return NO_CHANGE

    if now < monitor.grace_deadline:
        if monitor.status == MonitorStatus.GRACE:
            return NO_CHANGE
        return SweepDecision(new_status=MonitorStatus.GRACE)

    already_down = monitor.status == MonitorStatus.DOWN
    return SweepDecision(
        new_status=None if already_down else MonitorStatus.DOWN,
        alert=not already_down or monitor.last_alert_at is None,
    )


def next_expected_after(now: datetime, interval_seconds: int) -> datetime:
    """Deadline for the next ping given one received at `now`."""
    return now + timedelta(seconds=interval_seconds)


def status_after_ping(is_paused: bool) -> MonitorStatus:
    return MonitorStatus.PAUSED if is_paused else MonitorStatus.UP


def status_for_pause(is_paused: bool) -> MonitorStatus:
    # Unpausing restarts from `new`: the schedule baseline is stale.
    return MonitorStatus.PAUSED if is_paused else MonitorStatus.NEW
