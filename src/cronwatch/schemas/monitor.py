from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator


class MonitorStatus(str, Enum):
    """Monitor lifecycle states."""

    NEW = "new"
    UP = "up"
    GRACE = "grace"
    DOWN = "down"
    PAUSED = "paused"


class IntervalUnit(str, Enum):
    """Units accepted for interval and grace values."""

    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


MAX_NAME_LENGTH = 100

UNIT_SECONDS = {
    IntervalUnit.MINUTES: 60,
    IntervalUnit.HOURS: 3600,
    IntervalUnit.DAYS: 86400,
}


def unit_to_seconds(value: int, unit: IntervalUnit) -> int:
    """Convert a value in the given unit to seconds."""
    return value * UNIT_SECONDS[unit]


class MonitorCreate(BaseModel):
    """Schema for creating a monitor."""

    name: str = Field(..., min_length=1)
    interval_value: int = Field(..., ge=1)
    interval_unit: IntervalUnit = IntervalUnit.MINUTES
    grace_value: int = Field(default=0, ge=0)
    grace_unit: IntervalUnit = IntervalUnit.MINUTES
    alert_email: bool = True
    webhook_url: HttpUrl | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Monitor name is required")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Monitor name must be at most {MAX_NAME_LENGTH} characters")
        return v

    @property
    def interval_seconds(self) -> int:
        return unit_to_seconds(self.interval_value, self.interval_unit)

    @property
    def grace_seconds(self) -> int:
        return unit_to_seconds(self.grace_value, self.grace_unit)


class MonitorUpdate(BaseModel):
    """Schema for updating a monitor. Only these fields are mutable."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    is_paused: bool | None = None
    alert_email: bool | None = None
    webhook_url: HttpUrl | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Monitor name cannot be blank")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Monitor name must be at most {MAX_NAME_LENGTH} characters")
        return v


class MonitorResponse(BaseModel):
    """Schema for monitor response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    interval_seconds: int
    grace_seconds: int
    status: MonitorStatus
    last_ping_at: datetime | None
    next_expected_at: datetime | None
    last_alert_at: datetime | None
    alert_email: bool
    webhook_url: str | None
    is_paused: bool
    created_at: datetime
    updated_at: datetime


class MonitorList(BaseModel):
    """Schema for list of monitors."""

    monitors: list[MonitorResponse]
    total: int
