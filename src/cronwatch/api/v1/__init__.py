from __future__ import annotations

from cronwatch.api.v1 import monitors, ping, sweep, webhooks

__all__ = [
    "ping",
    "sweep",
    "monitors",
    "webhooks",
]
