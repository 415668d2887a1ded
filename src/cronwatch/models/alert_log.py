from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cronwatch.models.base import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from cronwatch.models.monitor import Monitor


class AlertLog(Base):
    """Audit record of one alert delivery attempt on one channel."""

    __tablename__ = "alert_logs"

    id: Mapped[int] = mapped_column(primary_key=True)

    monitor_id: Mapped[int] = mapped_column(
        ForeignKey("monitors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    alert_type: Mapped[str] = mapped_column(String(20), nullable=False)  # 'email', 'webhook'
    message: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    sent_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
        index=True,
    )

    monitor: Mapped[Monitor] = relationship(back_populates="alert_logs")

    def __repr__(self) -> str:
        return (
            f"<AlertLog(id={self.id}, monitor_id={self.monitor_id}, "
            f"alert_type='{self.alert_type}', success={self.success})>"
        )
