from __future__ import annotations

from cronwatch.services.monitor_service import MonitorService
from cronwatch.services.owner_directory import OwnerDirectory
from cronwatch.services.ping_service import PingOutcome, PingService
from cronwatch.services.state_machine import (
    MonitorSnapshot,
    SweepDecision,
    evaluate,
)
from cronwatch.services.sweep_service import SweepResult, SweepService

__all__ = [
    "MonitorService",
    "OwnerDirectory",
    "PingService",
    "PingOutcome",
    "SweepService",
    "SweepResult",
    "MonitorSnapshot",
    "SweepDecision",
    "evaluate",
]
