from __future__ import annotations

import asyncio

import structlog

from cronwatch.services.sweep_service import SweepResult, SweepService

logger = structlog.get_logger(__name__)


class SweepScheduler:
    """Runs the deadline sweep on a fixed interval."""

    def __init__(
        self,
        sweep_service: SweepService,
        interval_seconds: float = 60,
        budget_seconds: float | None = None,
    ):
        self.sweep_service = sweep_service
        self.interval_seconds = interval_seconds
        self.budget_seconds = budget_seconds
        self.running = False
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        """Start the scheduler. Returns once `stop()` is called."""
        self.running = True
        self._stopped.clear()
        logger.info("scheduler_started", interval_seconds=self.interval_seconds)

        while self.running:
            try:
                await self.run_once()
            except Exception as exc:
                logger.error("scheduler_error", error=str(exc), exc_info=True)

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        """Stop the scheduler."""
        self.running = False
        self._stopped.set()
        logger.info("scheduler_stopped")

    async def run_once(self) -> SweepResult:
        """Run a single sweep tick."""
        result = await self.sweep_service.run_sweep(budget_seconds=self.budget_seconds)
        for error in result.errors:
            logger.warning("sweep_error", error=error)
        return result
