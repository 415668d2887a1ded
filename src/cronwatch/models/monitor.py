from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cronwatch.models.base import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from cronwatch.models.alert_log import AlertLog
    from cronwatch.models.ping import Ping
    from cronwatch.models.user import User


class Monitor(Base):
    """A heartbeat monitor: expects a ping every interval, alerts after grace."""

    __tablename__ = "monitors"

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True)

    # Owner
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Public ping credential, never derived from id
    slug: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Schedule
    interval_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    grace_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # State
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="new",
        index=True,
    )  # 'new', 'up', 'grace', 'down', 'paused'
    last_ping_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    next_expected_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_alert_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Alert configuration
    alert_email: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    webhook_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    is_paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    # Relationships
    owner: Mapped[User] = relationship(back_populates="monitors")
    pings: Mapped[list[Ping]] = relationship(
        back_populates="monitor",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    alert_logs: Mapped[list[AlertLog]] = relationship(
        back_populates="monitor",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Monitor(id={self.id}, name='{self.name}', status='{self.status}')>"
