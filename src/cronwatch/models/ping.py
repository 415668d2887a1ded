from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cronwatch.models.base import Base, UTCDateTime

if TYPE_CHECKING:
    from cronwatch.models.monitor import Monitor


class Ping(Base):
    """Append-only record of one received liveness ping."""

    __tablename__ = "pings"

    id: Mapped[int] = mapped_column(primary_key=True)

    monitor_id: Mapped[int] = mapped_column(
        ForeignKey("monitors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    received_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        index=True,
    )
    source_ip: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    monitor: Mapped[Monitor] = relationship(back_populates="pings")

    def __repr__(self) -> str:
        return f"<Ping(id={self.id}, monitor_id={self.monitor_id})>"
