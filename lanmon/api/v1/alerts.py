from fastapi import APIRouter, Depends, Query

from lanmon.core.database import as_utc
from lanmon.dependencies import get_monitor
from lanmon.schemas.alerts import AlertEvent, AlertsResponse
from lanmon.services.monitor import ServiceMonitor

router = APIRouter()


@router.get("/alerts")
async def list_alerts(
    limit: int = Query(50, ge=1, le=500),
    service: str | None = None,
    monitor: ServiceMonitor = Depends(get_monitor),
) -> AlertsResponse:
    """Most recent alerts first, optionally for one target."""
    if service:
        rows = await monitor.alerts.for_target(service, limit)
    else:
        rows = await monitor.alerts.recent(limit)
    alerts = [
        AlertEvent(
            id=a.id,
            service_id=a.service_id,
            service_name=a.service_name,
            status=a.status,
            message=a.message,
            created_at=as_utc(a.created_at),
        )
        for a in rows
    ]
    return AlertsResponse(alerts=alerts, count=len(alerts))
