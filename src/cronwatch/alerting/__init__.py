from __future__ import annotations

from cronwatch.alerting.base import (
    AlertChannel,
    AlertEvent,
    AlertKind,
    ChannelResult,
    DispatchReport,
)
from cronwatch.alerting.dispatcher import AlertDispatcher
from cronwatch.alerting.email import EmailAlertChannel
from cronwatch.alerting.webhook import WebhookAlertChannel

__all__ = [
    "AlertChannel",
    "AlertEvent",
    "AlertKind",
    "ChannelResult",
    "DispatchReport",
    "AlertDispatcher",
    "EmailAlertChannel",
    "WebhookAlertChannel",
]
