"""Unit tests for AlertDispatcher fan-out, isolation and audit logging."""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from cronwatch.alerting.base import AlertKind
from cronwatch.alerting.dispatcher import AlertDispatcher
from cronwatch.models.alert_log import AlertLog
from cronwatch.schemas.alert_log import ChannelType
from cronwatch.schemas.monitor import MonitorStatus
from cronwatch.services.state_machine import MonitorSnapshot

T = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


def _snapshot(monitor_id: int, **overrides) -> MonitorSnapshot:
    values = dict(
        id=monitor_id,
        user_id=1,
        slug="abcdEFGH1234ijkl",
        name="Nightly backup",
        interval_seconds=3600,
        grace_seconds=300,
        status=MonitorStatus.DOWN,
        is_paused=False,
        alert_email=True,
        webhook_url="https://hooks.example.com/x",
        last_ping_at=T - timedelta(hours=2),
        next_expected_at=T - timedelta(hours=1),
    )
    values.update(overrides)
    return MonitorSnapshot(**values)


async def _logs(session_factory) -> list[AlertLog]:
    async with session_factory() as db:
        result = await db.execute(select(AlertLog).order_by(AlertLog.id))
        return list(result.scalars().all())


@pytest.mark.unit
async def test_down_alert_fans_out_to_both_channels(
    dispatcher, sample_monitor, session_factory, email_channel, webhook_channel
) -> None:
    report = await dispatcher.send_down_alerts(_snapshot(sample_monitor.id), "owner@example.com")

    assert report.attempted
    assert report.any_succeeded
    assert not report.any_failed
    assert {r.channel for r in report.results} == {ChannelType.EMAIL, ChannelType.WEBHOOK}

    event, target = email_channel.sent[0]
    assert target == "owner@example.com"
    assert event.kind == AlertKind.DOWN
    assert event.dashboard_url == "http://test/dashboard"
    assert webhook_channel.sent[0][1] == "https://hooks.example.com/x"

    logs = await _logs(session_factory)
    assert [(log.alert_type, log.message) for log in logs] == [
        ("email", "Down alert to owner@example.com"),
        ("webhook", "down alert webhook"),
    ]


@pytest.mark.unit
async def test_recovery_alert_messages(dispatcher, sample_monitor, session_factory) -> None:
    await dispatcher.send_recovery_alerts(_snapshot(sample_monitor.id), "owner@example.com")
    logs = await _logs(session_factory)
    assert [log.message for log in logs] == [
        "Recovery alert to owner@example.com",
        "recovered alert webhook",
    ]


@pytest.mark.unit
async def test_email_skipped_without_owner_or_opt_in(
    dispatcher, sample_monitor, email_channel
) -> None:
    await dispatcher.send_down_alerts(_snapshot(sample_monitor.id), None)
    await dispatcher.send_down_alerts(
        _snapshot(sample_monitor.id, alert_email=False), "owner@example.com"
    )
    assert email_channel.sent == []


@pytest.mark.unit
async def test_nothing_configured_attempts_nothing(dispatcher, sample_monitor, session_factory) -> None:
    report = await dispatcher.send_down_alerts(
        _snapshot(sample_monitor.id, alert_email=False, webhook_url=None), "owner@example.com"
    )
    assert not report.attempted
    assert await _logs(session_factory) == []


@pytest.mark.unit
async def test_one_failing_channel_does_not_block_the_other(
    session_factory, sample_monitor, email_channel, channel_factory, clock
) -> None:
    broken_webhook = channel_factory(ChannelType.WEBHOOK, fail_with="Webhook returned 500: oops")
    dispatcher = AlertDispatcher(
        session_factory,
        email_channel=email_channel,
        webhook_channel=broken_webhook,
        clock=clock,
    )

    report = await dispatcher.send_down_alerts(_snapshot(sample_monitor.id), "owner@example.com")

    assert report.any_succeeded and report.any_failed
    assert [f.error for f in report.failures] == ["Webhook returned 500: oops"]
    assert len(email_channel.sent) == 1

    logs = await _logs(session_factory)
    webhook_log = next(log for log in logs if log.alert_type == "webhook")
    assert webhook_log.success is False
    assert webhook_log.error == "Webhook returned 500: oops"


@pytest.mark.unit
async def test_stalled_channel_times_out(
    session_factory, sample_monitor, webhook_channel, channel_factory, clock
) -> None:
    class StalledEmail(channel_factory):
        async def send(self, event, target):
            await asyncio.sleep(10)

    dispatcher = AlertDispatcher(
        session_factory,
        email_channel=StalledEmail(ChannelType.EMAIL),
        webhook_channel=webhook_channel,
        timeout_seconds=0.05,
        clock=clock,
    )

    report = await dispatcher.send_down_alerts(_snapshot(sample_monitor.id), "owner@example.com")

    email_result = next(r for r in report.results if r.channel == ChannelType.EMAIL)
    assert email_result.success is False
    assert email_result.error == "Timed out after 0.05s"
    assert len(webhook_channel.sent) == 1


@pytest.mark.unit
async def test_unexpected_exception_is_captured(
    session_factory, sample_monitor, webhook_channel, channel_factory, clock
) -> None:
    class ExplodingEmail(channel_factory):
        async def send(self, event, target):
            raise RuntimeError("template missing")

    dispatcher = AlertDispatcher(
        session_factory,
        email_channel=ExplodingEmail(ChannelType.EMAIL),
        webhook_channel=webhook_channel,
        clock=clock,
    )

    report = await dispatcher.send_down_alerts(_snapshot(sample_monitor.id), "owner@example.com")
    assert [f.error for f in report.failures] == ["template missing"]


@pytest.mark.unit
async def test_unconfigured_email_channel_recorded_as_failure(
    session_factory, sample_monitor, webhook_channel, clock
) -> None:
    dispatcher = AlertDispatcher(
        session_factory,
        email_channel=None,
        webhook_channel=webhook_channel,
        clock=clock,
    )
    report = await dispatcher.send_down_alerts(_snapshot(sample_monitor.id), "owner@example.com")
    assert [f.error for f in report.failures] == ["email channel is not configured"]
