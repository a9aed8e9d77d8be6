from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AgentTarget(BaseModel):
    """An auxiliary machine polled by the heartbeat reporter."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    ip: str
    gateway_port: int = Field(18789, alias="gatewayPort")


class AgentStatusInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    status: str
    current_task: str | None = Field(None, alias="currentTask")
    last_update: datetime | None = Field(None, alias="lastUpdate")


class AgentStatusResponse(BaseModel):
    agents: list[AgentStatusInfo]


class AgentStatusReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["online", "offline", "busy", "idle"]
    current_task: str | None = Field(None, alias="currentTask")


# ── Chat / presence relay ────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender: str = Field("", alias="from")
    text: str = ""
    ts: str = ""


class ChatResponse(BaseModel):
    messages: list[ChatMessage]
    count: int


class PresenceInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "unknown"
    last_task: str = Field("", alias="lastTask")
    last_active: str = Field("", alias="lastActive")


class PresenceResponse(BaseModel):
    agents: dict[str, PresenceInfo]
