from __future__ import annotations

from cronwatch.workers.scheduler import SweepScheduler

__all__ = [
    "SweepScheduler",
]
