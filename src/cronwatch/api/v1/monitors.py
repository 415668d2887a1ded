from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from cronwatch.dependencies import CurrentUser, MonitorServiceDep
from cronwatch.schemas.alert_log import AlertLogList, AlertLogResponse
from cronwatch.schemas.monitor import (
    MonitorCreate,
    MonitorList,
    MonitorResponse,
    MonitorUpdate,
)
from cronwatch.schemas.ping import PingList, PingResponse
from cronwatch.utils.exceptions import QuotaExceededError, UnsafeURLError

router = APIRouter()


def _not_found(monitor_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Monitor {monitor_id} not found",
    )


@router.post(
    "/",
    response_model=MonitorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_monitor(
    monitor_in: MonitorCreate,
    user: CurrentUser,
    service: MonitorServiceDep,
) -> MonitorResponse:
    """Create a new monitor."""
    try:
        monitor = await service.create_monitor(user.id, monitor_in)
    except QuotaExceededError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except UnsafeURLError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.reason) from exc
    return MonitorResponse.model_validate(monitor)


@router.get("/", response_model=MonitorList)
async def list_monitors(
    user: CurrentUser,
    service: MonitorServiceDep,
) -> MonitorList:
    """List the caller's monitors, newest first."""
    monitors, total = await service.list_monitors(user.id)
    return MonitorList(
        monitors=[MonitorResponse.model_validate(m) for m in monitors],
        total=total,
    )


@router.get("/{monitor_id}", response_model=MonitorResponse)
async def get_monitor(
    monitor_id: int,
    user: CurrentUser,
    service: MonitorServiceDep,
) -> MonitorResponse:
    """Get a monitor by ID."""
    monitor = await service.get_monitor(user.id, monitor_id)
    if monitor is None:
        raise _not_found(monitor_id)
    return MonitorResponse.model_validate(monitor)


@router.patch("/{monitor_id}", response_model=MonitorResponse)
async def update_monitor(
    monitor_id: int,
    monitor_in: MonitorUpdate,
    user: CurrentUser,
    service: MonitorServiceDep,
) -> MonitorResponse:
    """Update a monitor. Pausing and unpausing also move its status."""
    try:
        monitor = await service.update_monitor(user.id, monitor_id, monitor_in)
    except UnsafeURLError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.reason) from exc

    if monitor is None:
        raise _not_found(monitor_id)
    return MonitorResponse.model_validate(monitor)


@router.delete("/{monitor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_monitor(
    monitor_id: int,
    user: CurrentUser,
    service: MonitorServiceDep,
):
    """Delete a monitor with its ping and alert history."""
    deleted = await service.delete_monitor(user.id, monitor_id)
    if not deleted:
        raise _not_found(monitor_id)


@router.get("/{monitor_id}/pings", response_model=PingList)
async def list_pings(
    monitor_id: int,
    user: CurrentUser,
    service: MonitorServiceDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
) -> PingList:
    """Ping history for a monitor, newest first."""
    page = await service.list_pings(user.id, monitor_id, skip=skip, limit=limit)
    if page is None:
        raise _not_found(monitor_id)

    pings, total = page
    return PingList(
        pings=[PingResponse.model_validate(p) for p in pings],
        total=total,
    )


@router.get("/{monitor_id}/alerts", response_model=AlertLogList)
async def list_alerts(
    monitor_id: int,
    user: CurrentUser,
    service: MonitorServiceDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
) -> AlertLogList:
    """Alert delivery history for a monitor, newest first."""
    page = await service.list_alert_logs(user.id, monitor_id, skip=skip, limit=limit)
    if page is None:
        raise _not_found(monitor_id)

    alerts, total = page
    return AlertLogList(
        alerts=[AlertLogResponse.model_validate(a) for a in alerts],
        total=total,
    )
