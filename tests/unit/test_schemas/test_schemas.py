"""Unit tests for Pydantic v2 schemas — no DB required."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from cronwatch.schemas.monitor import (
    IntervalUnit,
    MonitorCreate,
    MonitorResponse,
    MonitorStatus,
    MonitorUpdate,
    unit_to_seconds,
)
from cronwatch.schemas.sweep import SweepResponse

NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


# ── MonitorCreate ─────────────────────────────────────────────────────────────

@pytest.mark.unit
def test_monitor_create_defaults() -> None:
    m = MonitorCreate(name="Backup", interval_value=5)
    assert m.interval_unit == IntervalUnit.MINUTES
    assert m.interval_seconds == 300
    assert m.grace_seconds == 0
    assert m.alert_email is True
    assert m.webhook_url is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "value, unit, seconds",
    [(1, "minutes", 60), (2, "hours", 7200), (1, "days", 86400)],
)
def test_unit_conversion(value: int, unit: str, seconds: int) -> None:
    assert unit_to_seconds(value, IntervalUnit(unit)) == seconds


@pytest.mark.unit
def test_monitor_create_trims_name() -> None:
    assert MonitorCreate(name="  Backup  ", interval_value=1).name == "Backup"


@pytest.mark.unit
def test_monitor_name_length_checked_after_trim() -> None:
    name = "x" * 100
    assert MonitorCreate(name=f"  {name}  ", interval_value=1).name == name
    assert MonitorUpdate(name=f" {name}\n").name == name
    with pytest.raises(ValidationError):
        MonitorUpdate(name="y" * 101)


@pytest.mark.unit
@pytest.mark.parametrize("name", ["", "   ", "x" * 101])
def test_monitor_create_bad_name(name: str) -> None:
    with pytest.raises(ValidationError):
        MonitorCreate(name=name, interval_value=1)


@pytest.mark.unit
def test_monitor_create_interval_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        MonitorCreate(name="Backup", interval_value=0)


@pytest.mark.unit
def test_monitor_create_negative_grace() -> None:
    with pytest.raises(ValidationError):
        MonitorCreate(name="Backup", interval_value=1, grace_value=-1)


@pytest.mark.unit
def test_monitor_create_unknown_unit() -> None:
    with pytest.raises(ValidationError):
        MonitorCreate(name="Backup", interval_value=1, interval_unit="weeks")


@pytest.mark.unit
@pytest.mark.parametrize("url", ["not-a-url", "ftp://example.com/hook"])
def test_monitor_create_webhook_must_be_http(url: str) -> None:
    with pytest.raises(ValidationError):
        MonitorCreate(name="Backup", interval_value=1, webhook_url=url)


# ── MonitorUpdate ─────────────────────────────────────────────────────────────

@pytest.mark.unit
def test_monitor_update_partial() -> None:
    u = MonitorUpdate(is_paused=True)
    assert u.model_dump(exclude_unset=True) == {"is_paused": True}


@pytest.mark.unit
@pytest.mark.parametrize("field", ["status", "slug", "interval_seconds", "last_alert_at"])
def test_monitor_update_rejects_fields_outside_allowlist(field: str) -> None:
    with pytest.raises(ValidationError):
        MonitorUpdate(**{field: "x"})


# ── Responses ─────────────────────────────────────────────────────────────────

@pytest.mark.unit
def test_monitor_response_from_dict() -> None:
    r = MonitorResponse.model_validate({
        "id": 1,
        "slug": "abcdEFGH1234ijkl",
        "name": "Backup",
        "interval_seconds": 300,
        "grace_seconds": 60,
        "status": "grace",
        "last_ping_at": NOW,
        "next_expected_at": NOW,
        "last_alert_at": None,
        "alert_email": True,
        "webhook_url": None,
        "is_paused": False,
        "created_at": NOW,
        "updated_at": NOW,
    })
    assert r.status == MonitorStatus.GRACE


@pytest.mark.unit
def test_sweep_response_omits_empty_errors() -> None:
    r = SweepResponse(checked=3, alerted=1, recovered=0, timestamp=NOW)
    dumped = r.model_dump(exclude_none=True)
    assert "errors" not in dumped
    assert dumped["ok"] is True
