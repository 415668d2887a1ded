#!/usr/bin/env python3
"""Run the periodic deadline sweep outside the web process."""
from __future__ import annotations

import asyncio
import signal

from cronwatch.config import get_settings
from cronwatch.database import close_db, init_db
from cronwatch.dependencies import build_container
from cronwatch.utils.logging import get_logger, setup_logging
from cronwatch.workers.scheduler import SweepScheduler

settings = get_settings()
setup_logging(settings.log_level, settings.log_json)
logger = get_logger(__name__)


async def main() -> None:
    """Build services and sweep every `sweep_interval_seconds` until signalled."""
    container = build_container(settings)
    await init_db(container.engine)

    if container.email_channel is None:
        logger.warning("email_alerts_disabled")

    scheduler = SweepScheduler(
        sweep_service=container.sweep_service(),
        interval_seconds=settings.sweep_interval_seconds,
        budget_seconds=settings.sweep_budget_seconds,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(scheduler.stop()))

    logger.info(
        "starting_worker",
        interval_seconds=settings.sweep_interval_seconds,
        concurrency=settings.sweep_concurrency,
    )

    try:
        await scheduler.start()
    except Exception as exc:
        logger.error("worker_error", error=str(exc), exc_info=True)
        raise
    finally:
        await close_db(container.engine)


if __name__ == "__main__":
    asyncio.run(main())
