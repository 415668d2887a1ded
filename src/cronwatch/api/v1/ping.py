from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, Response, status

from cronwatch.dependencies import Container, PingServiceDep
from cronwatch.schemas.ping import PingAck
from cronwatch.services.ping_service import PingOutcome, PingService
from cronwatch.utils.exceptions import (
    InvalidSlugError,
    MonitorNotFoundError,
    StorageError,
)
from cronwatch.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}


def client_ip(request: Request, trust_proxy_headers: bool = True) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def _record(
    slug: str,
    request: Request,
    service: PingService,
    container: Container,
    background_tasks: BackgroundTasks,
) -> PingOutcome:
    try:
        outcome = await service.record_ping(
            slug,
            source_ip=client_ip(request, container.settings.trust_proxy_headers),
            user_agent=request.headers.get("user-agent"),
        )
    except InvalidSlugError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except MonitorNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Monitor not found",
        ) from exc
    except StorageError as exc:
        logger.error("ping_failed", slug=slug, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record ping",
        ) from exc

    if outcome.recovered:
        background_tasks.add_task(service.notify_recovery, outcome.monitor)

    return outcome


@router.api_route("/{slug}", methods=["GET", "POST"], response_model=PingAck)
async def ping(
    slug: str,
    request: Request,
    response: Response,
    service: PingServiceDep,
    container: Container,
    background_tasks: BackgroundTasks,
) -> PingAck:
    """Record a liveness ping. Safe to call from curl, wget or any HTTP client."""
    outcome = await _record(slug, request, service, container, background_tasks)
    response.headers.update(NO_STORE)
    return PingAck(
        monitor_id=outcome.slug,
        pinged_at=outcome.pinged_at,
        next_expected_at=outcome.next_expected_at,
    )


@router.head("/{slug}")
async def ping_head(
    slug: str,
    request: Request,
    service: PingServiceDep,
    container: Container,
    background_tasks: BackgroundTasks,
) -> Response:
    """Same as GET, without a body."""
    await _record(slug, request, service, container, background_tasks)
    return Response(status_code=status.HTTP_200_OK, headers=NO_STORE, background=background_tasks)
