from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

TICKET_LANES = ("backlog", "in-progress", "review", "done")
TICKET_PRIORITIES = ("low", "medium", "high", "critical")
IDEA_STATUSES = ("proposed", "approved", "rejected", "deferred", "converted")


# ── Tickets ──────────────────────────────────────────────────────────────────


class TicketCreate(BaseModel):
    """Fields are checked by the service so every failure is reported at once."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    priority: str | None = None
    lane: str | None = None
    assignee: str | None = None
    branch: str | None = None


class TicketUpdate(TicketCreate):
    pass


class TicketResponse(BaseModel):
    id: str
    title: str
    description: str
    priority: str
    lane: str
    assignee: str | None = None
    branch: str | None = None
    created_at: datetime
    updated_at: datetime


class TicketListResponse(BaseModel):
    tickets: list[TicketResponse]
    total: int


# ── Ideas ────────────────────────────────────────────────────────────────────


class IdeaCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    status: str | None = None
    tags: list[str] | str | None = None
    submitted_by: str | None = Field(
        None, validation_alias=AliasChoices("submitted_by", "submittedBy")
    )


class IdeaUpdate(IdeaCreate):
    pass


class IdeaResponse(BaseModel):
    id: str
    title: str
    description: str
    status: str
    tags: list[str]
    submitted_by: str
    converted_ticket_id: str | None = None
    created_at: datetime
    updated_at: datetime


class IdeaListResponse(BaseModel):
    ideas: list[IdeaResponse]
    count: int


class IdeaConversionResponse(BaseModel):
    ticket: TicketResponse
    idea: IdeaResponse
