from fastapi import APIRouter, Depends

from lanmon.dependencies import get_monitor
from lanmon.schemas.gpu import GpuResponse
from lanmon.services.monitor import ServiceMonitor

router = APIRouter()


@router.get("/gpu")
async def gpu_status(monitor: ServiceMonitor = Depends(get_monitor)) -> GpuResponse:
    """GPU telemetry. Tool failures are reported in-band with ``status="error"``."""
    status, cached = await monitor.get_gpu_status()
    return GpuResponse(gpus=status.gpus, status=status.status, error=status.error, cached=cached)
