from fastapi import APIRouter, Depends, Query

from lanmon.core.database import as_utc
from lanmon.dependencies import get_monitor
from lanmon.schemas.services import (
    CheckOutcome,
    HistoryPoint,
    HistoryResponse,
    ModelInventory,
    ServicesResponse,
    UptimeResponse,
)
from lanmon.services.history import DEFAULT_HOURS, clamp_hours
from lanmon.services.monitor import ServiceMonitor
from lanmon.services.uptime import summarize_uptime

router = APIRouter()


@router.get("/services", response_model=ServicesResponse, response_model_exclude_none=True)
async def list_services(monitor: ServiceMonitor = Depends(get_monitor)) -> ServicesResponse:
    """All targets, served from the sweep cache while it is fresh."""
    services, cached = await monitor.get_services()
    return ServicesResponse(services=services, cached=cached)


@router.get("/services/{service_id}", response_model=CheckOutcome, response_model_exclude_none=True)
async def get_service(service_id: str, monitor: ServiceMonitor = Depends(get_monitor)) -> CheckOutcome:
    """Fresh check of one target; bypasses the cache and is not recorded."""
    return await monitor.check_one(service_id)


@router.get("/services/{service_id}/history")
async def service_history(
    service_id: str,
    hours: int = Query(DEFAULT_HOURS),
    monitor: ServiceMonitor = Depends(get_monitor),
) -> HistoryResponse:
    target = monitor.get_target(service_id)
    window = clamp_hours(hours)
    entries = await monitor.history.query(target.id, window)
    return HistoryResponse(
        service_id=target.id,
        service_name=target.name,
        hours=window,
        entries=len(entries),
        history=[
            HistoryPoint(timestamp=as_utc(e.timestamp), status=e.status, response_ms=e.response_ms)
            for e in entries
        ],
    )


@router.get("/services/{service_id}/uptime")
async def service_uptime(
    service_id: str,
    hours: int = Query(DEFAULT_HOURS),
    monitor: ServiceMonitor = Depends(get_monitor),
) -> UptimeResponse:
    target = monitor.get_target(service_id)
    window = clamp_hours(hours)
    summary = summarize_uptime(await monitor.history.query(target.id, window))
    return UptimeResponse(
        service_id=target.id,
        service_name=target.name,
        hours=window,
        percent_up=summary.percent_up,
        segments=summary.segments,
    )


@router.get("/services/{service_id}/models")
async def service_models(service_id: str, monitor: ServiceMonitor = Depends(get_monitor)) -> ModelInventory:
    """Installed and loaded models of an inference server."""
    return await monitor.model_inventory(service_id)
