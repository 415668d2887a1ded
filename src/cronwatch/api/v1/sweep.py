from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from cronwatch.dependencies import Container, SweepServiceDep, verify_sweep_secret
from cronwatch.schemas.sweep import SweepResponse
from cronwatch.utils.exceptions import StorageError
from cronwatch.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(verify_sweep_secret)])


@router.api_route(
    "",
    methods=["GET", "POST"],
    response_model=SweepResponse,
    response_model_exclude_none=True,
)
async def run_sweep(
    service: SweepServiceDep,
    container: Container,
) -> SweepResponse:
    """Run one deadline sweep over all active monitors."""
    try:
        result = await service.run_sweep(
            budget_seconds=container.settings.sweep_budget_seconds,
        )
    except StorageError as exc:
        logger.error("sweep_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch monitors",
        ) from exc

    return SweepResponse(
        checked=result.checked,
        alerted=result.alerted,
        recovered=result.recovered,
        deferred=result.deferred,
        errors=result.errors or None,
        timestamp=result.timestamp,
    )
