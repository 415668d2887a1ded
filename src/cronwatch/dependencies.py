from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Callable

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cronwatch.alerting.dispatcher import AlertDispatcher
from cronwatch.alerting.email import EmailAlertChannel
from cronwatch.alerting.webhook import WebhookAlertChannel
from cronwatch.config import Settings, get_settings
from cronwatch.database import create_engine, create_session_factory, get_db
from cronwatch.models.base import utcnow
from cronwatch.models.user import User
from cronwatch.services.monitor_service import MonitorService
from cronwatch.services.owner_directory import OwnerDirectory
from cronwatch.services.ping_service import PingService
from cronwatch.services.sweep_service import SweepService


@dataclass
class ServiceContainer:
    """Everything built once at startup and shared by requests."""

    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    owner_directory: OwnerDirectory
    dispatcher: AlertDispatcher
    webhook_channel: WebhookAlertChannel
    email_channel: EmailAlertChannel | None = None
    clock: Callable[[], datetime] = field(default=utcnow)

    def sweep_service(self) -> SweepService:
        return SweepService(
            session_factory=self.session_factory,
            dispatcher=self.dispatcher,
            owner_directory=self.owner_directory,
            concurrency=self.settings.sweep_concurrency,
            clock=self.clock,
        )


def build_container(
    settings: Settings | None = None,
    engine: AsyncEngine | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> ServiceContainer:
    """Wire the engine, channels and dispatcher from settings."""
    settings = settings or get_settings()
    engine = engine or create_engine(settings)
    session_factory = create_session_factory(engine)

    email_channel = None
    if settings.email_enabled:
        email_channel = EmailAlertChannel(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            from_email=settings.from_email,
            use_tls=settings.smtp_use_tls,
            timeout=settings.alert_timeout_seconds,
        )
    webhook_channel = WebhookAlertChannel(timeout=settings.alert_timeout_seconds)

    dispatcher = AlertDispatcher(
        session_factory=session_factory,
        email_channel=email_channel,
        webhook_channel=webhook_channel,
        timeout_seconds=settings.alert_timeout_seconds,
        dashboard_url=f"{settings.app_url.rstrip('/')}/dashboard",
        clock=clock,
    )

    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        owner_directory=OwnerDirectory(session_factory),
        dispatcher=dispatcher,
        webhook_channel=webhook_channel,
        email_channel=email_channel,
        clock=clock,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


# Type aliases for common dependencies
DbSession = Annotated[AsyncSession, Depends(get_db)]
Container = Annotated[ServiceContainer, Depends(get_container)]


async def get_current_user(
    db: DbSession,
    x_user_id: Annotated[str | None, Header()] = None,
) -> User:
    """Resolve the caller from the gateway-supplied `X-User-Id` header."""
    if not x_user_id or not x_user_id.isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    user = await db.get(User, int(x_user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def verify_sweep_secret(
    container: Container,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Require `Authorization: Bearer <sweep_secret>`."""
    expected = container.settings.sweep_secret
    if not expected or not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(
        token.strip().encode(), expected.encode()
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_ping_service(db: DbSession, container: Container) -> PingService:
    return PingService(
        db=db,
        dispatcher=container.dispatcher,
        owner_directory=container.owner_directory,
        min_slug_length=container.settings.min_slug_length,
        recovery_timeout_seconds=container.settings.recovery_timeout_seconds,
        clock=container.clock,
    )


def get_monitor_service(db: DbSession, container: Container) -> MonitorService:
    return MonitorService(
        db=db,
        max_monitors_per_user=container.settings.max_monitors_per_user,
        slug_bytes=container.settings.slug_bytes,
        clock=container.clock,
    )


def get_sweep_service(container: Container) -> SweepService:
    return container.sweep_service()


PingServiceDep = Annotated[PingService, Depends(get_ping_service)]
MonitorServiceDep = Annotated[MonitorService, Depends(get_monitor_service)]
SweepServiceDep = Annotated[SweepService, Depends(get_sweep_service)]
