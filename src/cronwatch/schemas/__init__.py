from __future__ import annotations

from cronwatch.schemas.alert_log import AlertLogList, AlertLogResponse, ChannelType
from cronwatch.schemas.monitor import (
    IntervalUnit,
    MonitorCreate,
    MonitorList,
    MonitorResponse,
    MonitorStatus,
    MonitorUpdate,
)
from cronwatch.schemas.ping import PingAck, PingList, PingResponse
from cronwatch.schemas.sweep import SweepResponse
from cronwatch.schemas.webhook import WebhookTestRequest, WebhookTestResponse

__all__ = [
    # Monitor
    "MonitorStatus",
    "IntervalUnit",
    "MonitorCreate",
    "MonitorUpdate",
    "MonitorResponse",
    "MonitorList",
    # Ping
    "PingAck",
    "PingResponse",
    "PingList",
    # Alert log
    "ChannelType",
    "AlertLogResponse",
    "AlertLogList",
    # Sweep
    "SweepResponse",
    # Webhook
    "WebhookTestRequest",
    "WebhookTestResponse",
]
