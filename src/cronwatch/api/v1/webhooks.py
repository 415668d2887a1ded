from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from cronwatch.dependencies import Container, CurrentUser
from cronwatch.schemas.webhook import WebhookTestRequest, WebhookTestResponse
from cronwatch.utils.exceptions import AlertDeliveryError, UnsafeURLError
from cronwatch.utils.logging import get_logger
from cronwatch.utils.ssrf import validate_url_not_internal

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/test",
    response_model=WebhookTestResponse,
    response_model_exclude_none=True,
    responses={422: {"model": WebhookTestResponse}},
)
async def test_webhook(
    body: WebhookTestRequest,
    user: CurrentUser,
    container: Container,
):
    """Send a sample notification to a webhook URL before saving it."""
    url = str(body.webhook_url)
    try:
        await validate_url_not_internal(url)
    except UnsafeURLError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.reason) from exc

    try:
        await container.webhook_channel.send_test(url)
    except AlertDeliveryError as exc:
        logger.info("webhook_test_failed", user_id=user.id, error=exc.reason)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=WebhookTestResponse(success=False, error=exc.reason).model_dump(),
        )

    logger.info("webhook_test_sent", user_id=user.id)
    return WebhookTestResponse(success=True)
