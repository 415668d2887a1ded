from __future__ import annotations

from cronwatch.models.alert_log import AlertLog
from cronwatch.models.base import Base
from cronwatch.models.monitor import Monitor
from cronwatch.models.ping import Ping
from cronwatch.models.user import User

__all__ = [
    "Base",
    "User",
    "Monitor",
    "Ping",
    "AlertLog",
]
