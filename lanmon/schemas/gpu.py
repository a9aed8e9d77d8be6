from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class GpuReading(BaseModel):
    """One row of vendor telemetry. ``None`` means the tool reported N/A."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    name: str
    utilization: float | None = None
    memory_utilization: float | None = Field(None, alias="memoryUtilization")
    temperature: float | None = None
    memory_used: float | None = Field(None, alias="memoryUsed")
    memory_total: float | None = Field(None, alias="memoryTotal")
    power_draw: float | None = Field(None, alias="powerDraw")
    status: Literal["up", "warning"]
    last_checked: datetime = Field(alias="lastChecked")


class GpuStatus(BaseModel):
    gpus: list[GpuReading] = []
    status: Literal["ok", "error"]
    error: str | None = None


class GpuResponse(GpuStatus):
    cached: bool
