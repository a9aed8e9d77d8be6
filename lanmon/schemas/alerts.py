from datetime import datetime

from pydantic import BaseModel


class AlertEvent(BaseModel):
    id: int
    service_id: str
    service_name: str | None = None
    status: str | None = None
    message: str | None = None
    created_at: datetime


class AlertsResponse(BaseModel):
    alerts: list[AlertEvent]
    count: int
