from datetime import datetime, timezone

from fastapi import APIRouter

from lanmon.schemas.health import HealthResponse

router = APIRouter()


@router.get("/health")
async def health_check() -> HealthResponse:
    """Liveness check; touches no monitored target."""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))
