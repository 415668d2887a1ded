from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from cronwatch import __version__
from cronwatch.api.v1 import monitors, ping, sweep, webhooks
from cronwatch.config import get_settings
from cronwatch.database import close_db, init_db
from cronwatch.dependencies import ServiceContainer, build_container
from cronwatch.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built services. Built from environment settings
            on startup when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan events.

        Handles startup and shutdown tasks.
        """
        if getattr(app.state, "container", None) is None:
            app.state.container = build_container()
        settings = app.state.container.settings
        setup_logging(settings.log_level, settings.log_json)
        logger.info("application_startup")

        # Initialize database (development only - use Alembic in production)
        await init_db(app.state.container.engine)

        yield

        # Cleanup
        await close_db(app.state.container.engine)
        logger.info("application_shutdown")

    app = FastAPI(
        title="cronwatch",
        description="Dead man's switch monitoring for cron jobs and background workers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    settings = container.settings if container else get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        ping.router,
        prefix="/ping",
        tags=["ping"],
    )
    app.include_router(
        sweep.router,
        prefix="/api/v1/sweep",
        tags=["sweep"],
    )
    app.include_router(
        monitors.router,
        prefix="/api/v1/monitors",
        tags=["monitors"],
    )
    app.include_router(
        webhooks.router,
        prefix="/api/v1/webhooks",
        tags=["webhooks"],
    )

    @app.get("/health")
    async def health_check(response: Response) -> dict[str, Any]:
        """Health check endpoint."""
        response.headers["Cache-Control"] = "no-store"
        clock = app.state.container.clock
        return {
            "status": "ok",
            "service": "cronwatch",
            "timestamp": clock().isoformat(),
        }

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "cronwatch API",
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()
