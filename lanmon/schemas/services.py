from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CheckStatus = Literal["up", "down", "warning", "unknown"]


class Target(BaseModel):
    """A monitored endpoint. ``type`` selects the protocol checker."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    host: str
    type: str
    url: str | None = None


class LoadedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    size_bytes: int | None = Field(None, alias="sizeBytes")
    size_gb: float | None = Field(None, alias="sizeGb")


class CheckOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    host: str
    status: CheckStatus
    response_ms: int | None = Field(None, alias="responseMs")
    last_checked: datetime = Field(alias="lastChecked")
    error: str | None = None
    status_code: int | None = Field(None, alias="statusCode")
    extra: dict | None = None


class ServicesResponse(BaseModel):
    services: list[CheckOutcome]
    cached: bool


class HistoryPoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime
    status: str
    response_ms: int | None = Field(None, alias="responseMs")


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(alias="serviceId")
    service_name: str = Field(alias="serviceName")
    hours: int
    entries: int
    history: list[HistoryPoint]


class UptimeSegment(BaseModel):
    status: str
    count: int


class UptimeSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    percent_up: float | None = Field(None, alias="percentUp")  # None = no data
    segments: list[UptimeSegment] = []


class UptimeResponse(UptimeSummary):
    service_id: str = Field(alias="serviceId")
    service_name: str = Field(alias="serviceName")
    hours: int


class ModelInventory(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(alias="serviceId")
    installed: list[LoadedModel]
    loaded: list[LoadedModel]
