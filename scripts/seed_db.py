#!/usr/bin/env python3
"""Seed database with a demo user and monitors for development."""
from __future__ import annotations

import asyncio

from sqlalchemy import select

from cronwatch.config import get_settings
from cronwatch.database import close_db, create_engine, create_session_factory, init_db
from cronwatch.models.monitor import Monitor
from cronwatch.models.user import User
from cronwatch.services.monitor_service import generate_slug
from cronwatch.utils.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

DEMO_EMAIL = "demo@example.com"


async def seed_database() -> None:
    """Create the demo user and a few monitors if they don't exist yet."""
    settings = get_settings()
    engine = create_engine(settings)
    await init_db(engine)
    session_factory = create_session_factory(engine)

    async with session_factory() as db:
        try:
            result = await db.execute(select(User).where(User.email == DEMO_EMAIL))
            if result.scalar_one_or_none() is not None:
                logger.info("database_already_seeded", email=DEMO_EMAIL)
                return

            user = User(email=DEMO_EMAIL)
            db.add(user)
            await db.flush()

            monitors = [
                Monitor(
                    user_id=user.id,
                    slug=generate_slug(settings.slug_bytes),
                    name="Nightly backup",
                    interval_seconds=86400,
                    grace_seconds=3600,
                ),
                Monitor(
                    user_id=user.id,
                    slug=generate_slug(settings.slug_bytes),
                    name="Invoice sync",
                    interval_seconds=900,
                    grace_seconds=300,
                ),
                Monitor(
                    user_id=user.id,
                    slug=generate_slug(settings.slug_bytes),
                    name="Queue worker heartbeat",
                    interval_seconds=60,
                    grace_seconds=60,
                ),
            ]
            db.add_all(monitors)
            await db.commit()

            logger.info(
                "database_seeded",
                user_id=user.id,
                monitor_count=len(monitors),
                ping_urls=[f"{settings.app_url.rstrip('/')}/ping/{m.slug}" for m in monitors],
            )

        except Exception as exc:
            logger.error("seed_failed", error=str(exc))
            await db.rollback()
            raise
        finally:
            await close_db(engine)


if __name__ == "__main__":
    asyncio.run(seed_database())
