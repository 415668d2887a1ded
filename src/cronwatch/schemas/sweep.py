from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SweepResponse(BaseModel):
    """Response body for a sweep run. `errors` is omitted when empty."""

    ok: bool = True
    checked: int
    alerted: int
    recovered: int
    deferred: int = 0
    errors: list[str] | None = Field(default=None)
    timestamp: datetime
