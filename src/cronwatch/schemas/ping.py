from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PingAck(BaseModel):
    """Response body for a recorded ping."""

    ok: bool = True
    monitor_id: str
    pinged_at: datetime
    next_expected_at: datetime


class PingResponse(BaseModel):
    """Schema for a stored ping."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    monitor_id: int
    received_at: datetime
    source_ip: str | None
    user_agent: str | None


class PingList(BaseModel):
    """Schema for list of pings."""

    pings: list[PingResponse]
    total: int
