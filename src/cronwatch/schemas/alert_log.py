from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ChannelType(str, Enum):
    """Alert delivery channels."""

    EMAIL = "email"
    WEBHOOK = "webhook"


class AlertLogResponse(BaseModel):
    """Schema for alert log response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    monitor_id: int
    alert_type: ChannelType
    message: str
    success: bool
    error: str | None
    sent_at: datetime


class AlertLogList(BaseModel):
    """Schema for list of alert logs."""

    alerts: list[AlertLogResponse]
    total: int
