from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from cronwatch.schemas.alert_log import ChannelType
from cronwatch.services.state_machine import MonitorSnapshot


class AlertKind(str, Enum):
    """Transition an alert reports."""

    DOWN = "down"
    RECOVERED = "recovered"


@dataclass(frozen=True)
class AlertEvent:
    """Standardized alert event for delivery."""

    kind: AlertKind
    monitor: MonitorSnapshot
    occurred_at: datetime
    dashboard_url: str | None = None

    @property
    def is_down(self) -> bool:
        return self.kind == AlertKind.DOWN


@dataclass(frozen=True)
class ChannelResult:
    """Outcome of one delivery attempt on one channel."""

    channel: ChannelType
    success: bool
    error: str | None = None


@dataclass
class DispatchReport:
    """All channel outcomes for one dispatch."""

    results: list[ChannelResult] = field(default_factory=list)

    @property
    def attempted(self) -> bool:
        return bool(self.results)

    @property
    def any_succeeded(self) -> bool:
        return any(r.success for r in self.results)

    @property
    def any_failed(self) -> bool:
        return any(not r.success for r in self.results)

    @property
    def failures(self) -> list[ChannelResult]:
        return [r for r in self.results if not r.success]


class AlertChannel(ABC):
    """Abstract base class for alert delivery channels."""

    channel_type: ChannelType

    @abstractmethod
    async def send(self, event: AlertEvent, target: str) -> None:
        """
        Deliver an alert.

        Args:
            event: Alert data to send
            target: Channel-specific destination (email address, URL)

        Raises:
            AlertDeliveryError: If delivery failed
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        Validate channel configuration.

        Returns:
            True if configuration is valid, False otherwise
        """
        pass


def format_interval(seconds: int) -> str:
    """Human description of a ping interval, e.g. 'Every 5 minutes'."""
    if seconds % 86400 == 0:
        days = seconds // 86400
        return f"Every {days} day{'s' if days > 1 else ''}"
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"Every {hours} hour{'s' if hours > 1 else ''}"
    minutes = max(round(seconds / 60), 1)
    return f"Every {minutes} minute{'s' if minutes > 1 else ''}"


def format_last_ping(value: datetime | None) -> str:
    if value is None:
        return "Never"
    return value.strftime("%a, %d %b %Y %H:%M:%S GMT")
