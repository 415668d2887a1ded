"""
Pytest configuration and shared fixtures.

Uses a throwaway SQLite file per test via aiosqlite, so no PostgreSQL is
required. A file rather than `:memory:` lets the sweep open several
sessions concurrently, each on its own connection.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cronwatch.alerting.base import AlertChannel, AlertEvent
from cronwatch.alerting.dispatcher import AlertDispatcher
from cronwatch.config import Settings
from cronwatch.dependencies import ServiceContainer
from cronwatch.main import create_app
from cronwatch.models.base import Base
from cronwatch.models.monitor import Monitor
from cronwatch.models.user import User
from cronwatch.schemas.alert_log import ChannelType
from cronwatch.services.owner_directory import OwnerDirectory
from cronwatch.services.sweep_service import SweepService
from cronwatch.utils import ssrf
from cronwatch.utils.exceptions import AlertDeliveryError

T0 = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)
SWEEP_SECRET = "test-sweep-secret"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


class RecordingChannel(AlertChannel):
    """Alert channel that records deliveries instead of sending them."""

    def __init__(self, channel_type: ChannelType, fail_with: str | None = None):
        self.channel_type = channel_type
        self.fail_with = fail_with
        self.sent: list[tuple[AlertEvent, str]] = []
        self.tests: list[str] = []

    def validate_config(self) -> bool:
        return True

    async def send(self, event: AlertEvent, target: str) -> None:
        self.sent.append((event, target))
        if self.fail_with:
            raise AlertDeliveryError(self.channel_type.value, self.fail_with, event.monitor.id)

    async def send_test(self, url: str) -> None:
        self.tests.append(url)
        if self.fail_with:
            raise AlertDeliveryError(self.channel_type.value, self.fail_with)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def channel_factory():
    """Build extra recording channels, e.g. ones that always fail."""
    return RecordingChannel


@pytest.fixture
def email_channel() -> RecordingChannel:
    return RecordingChannel(ChannelType.EMAIL)


@pytest.fixture
def webhook_channel() -> RecordingChannel:
    return RecordingChannel(ChannelType.WEBHOOK)


@pytest.fixture
def public_dns(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Make every hostname resolve to a public address."""
    addresses = ["93.184.216.34"]

    async def fake_resolve(hostname: str, port: int | None = None) -> list[str]:
        return list(addresses)

    monkeypatch.setattr(ssrf, "resolve_host", fake_resolve)
    return addresses


# ── SQLite engine ─────────────────────────────────────────────────────────────
@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a fresh SQLite database file per test function."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'cronwatch.db'}",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide an async session for direct service tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def sample_user(test_db: AsyncSession) -> User:
    user = User(email="owner@example.com")
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(test_db: AsyncSession) -> User:
    user = User(email="someone-else@example.com")
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture
async def sample_monitor(test_db: AsyncSession, sample_user: User) -> Monitor:
    """Monitor expecting a ping every 60s with 30s grace; never pinged."""
    monitor = Monitor(
        user_id=sample_user.id,
        slug="abcdEFGH1234ijkl",
        name="Nightly backup",
        interval_seconds=60,
        grace_seconds=30,
        status="new",
        alert_email=True,
        webhook_url="https://hooks.example.com/cronwatch",
        is_paused=False,
    )
    test_db.add(monitor)
    await test_db.commit()
    await test_db.refresh(monitor)
    return monitor


# ── Services ──────────────────────────────────────────────────────────────────
@pytest.fixture
def owner_directory(session_factory) -> OwnerDirectory:
    return OwnerDirectory(session_factory)


@pytest.fixture
def dispatcher(session_factory, email_channel, webhook_channel, clock) -> AlertDispatcher:
    return AlertDispatcher(
        session_factory=session_factory,
        email_channel=email_channel,
        webhook_channel=webhook_channel,
        timeout_seconds=1.0,
        dashboard_url="http://test/dashboard",
        clock=clock,
    )


@pytest.fixture
def sweep_service(session_factory, dispatcher, owner_directory, clock) -> SweepService:
    return SweepService(
        session_factory=session_factory,
        dispatcher=dispatcher,
        owner_directory=owner_directory,
        concurrency=4,
        clock=clock,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'cronwatch.db'}",
        sweep_secret=SWEEP_SECRET,
        sweep_budget_seconds=None,
        cors_origins=["http://test"],
        app_url="http://test",
    )


@pytest.fixture
def container(
    settings,
    db_engine,
    session_factory,
    owner_directory,
    dispatcher,
    webhook_channel,
    clock,
) -> ServiceContainer:
    return ServiceContainer(
        settings=settings,
        engine=db_engine,
        session_factory=session_factory,
        owner_directory=owner_directory,
        dispatcher=dispatcher,
        webhook_channel=webhook_channel,
        clock=clock,
    )


@pytest_asyncio.fixture
async def client(container) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client bound to an app built around `container`."""
    app = create_app(container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
