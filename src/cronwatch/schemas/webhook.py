from __future__ import annotations

from pydantic import BaseModel, HttpUrl


class WebhookTestRequest(BaseModel):
    """Schema for a webhook test-send request."""

    webhook_url: HttpUrl


class WebhookTestResponse(BaseModel):
    """Result of a webhook test-send."""

    success: bool
    error: str | None = None
