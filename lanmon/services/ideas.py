"""Idea board: proposals that can be promoted into tickets."""

import json

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

import lanmon.core.database as db_module
from lanmon.core.database import Idea, Ticket, as_utc, utcnow
from lanmon.core.exceptions import ConflictError, NotFoundError, ValidationError
from lanmon.schemas.tracker import (
    IDEA_STATUSES,
    IdeaConversionResponse,
    IdeaCreate,
    IdeaListResponse,
    IdeaResponse,
    IdeaUpdate,
)
from lanmon.services.tickets import (
    ID_ATTEMPTS,
    TICKET_PREFIX,
    new_ticket,
    next_prefixed_id,
    ticket_to_response,
)

logger = structlog.get_logger()

IDEA_PREFIX = "IDEA"
MIN_TITLE_LENGTH = 3
DEFAULT_SUBMITTER = "anonymous"
SORT_COLUMNS = ("id", "title", "status", "created_at", "updated_at")
DEFAULT_SORT = "created_at"


def serialize_tags(tags: list[str] | str | None) -> str:
    """Tags arrive as a list or a comma-separated string; stored as JSON."""
    if isinstance(tags, str):
        tags = tags.split(",")
    return json.dumps([t.strip() for t in tags or [] if t and t.strip()])


def deserialize_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        return []
    return parsed if isinstance(parsed, list) else []


def idea_to_response(idea: Idea) -> IdeaResponse:
    return IdeaResponse(
        id=idea.id,
        title=idea.title,
        description=idea.description or "",
        status=idea.status,
        tags=deserialize_tags(idea.tags),
        submitted_by=idea.submitted_by or DEFAULT_SUBMITTER,
        converted_ticket_id=idea.converted_ticket_id,
        created_at=as_utc(idea.created_at),
        updated_at=as_utc(idea.updated_at),
    )


def validate_idea(fields: dict, partial: bool = False) -> None:
    errors = []
    if not partial or "title" in fields:
        title = fields.get("title")
        if not title or not title.strip():
            errors.append("Title is required")
        elif len(title.strip()) < MIN_TITLE_LENGTH:
            errors.append(f"Title must be at least {MIN_TITLE_LENGTH} characters")
    status = fields.get("status")
    if (status is not None or (partial and "status" in fields)) and status not in IDEA_STATUSES:
        errors.append(f"Status must be one of: {', '.join(IDEA_STATUSES)}")
    if errors:
        raise ValidationError(errors)


class IdeaService:
    def __init__(self, session_factory: async_sessionmaker | None = None):
        self._session_factory_override = session_factory

    @property
    def _session_factory(self) -> async_sessionmaker:
        return self._session_factory_override or db_module.async_session

    async def list_ideas(
        self,
        status: str | None = None,
        tag: str | None = None,
        sort: str | None = None,
        order: str | None = None,
    ) -> IdeaListResponse:
        """Filter by status and exact tag. Unknown sort columns fall back to created_at."""
        column = getattr(Idea, sort if sort in SORT_COLUMNS else DEFAULT_SORT)
        ascending = (order or "").lower() == "asc"
        ordering = [column.asc(), Idea.id.asc()] if ascending else [column.desc(), Idea.id.desc()]

        stmt = select(Idea)
        if status:
            stmt = stmt.where(Idea.status == status)
        stmt = stmt.order_by(*ordering)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            ideas = [idea_to_response(i) for i in result.scalars().all()]

        if tag:
            ideas = [i for i in ideas if tag in i.tags]
        return IdeaListResponse(ideas=ideas, count=len(ideas))

    async def get_idea(self, idea_id: str) -> IdeaResponse:
        async with self._session_factory() as session:
            idea = await session.get(Idea, idea_id)
            if idea is None:
                raise NotFoundError(f"Idea {idea_id} not found.")
            return idea_to_response(idea)

    async def create_idea(self, data: IdeaCreate) -> IdeaResponse:
        validate_idea(data.model_dump())

        for _ in range(ID_ATTEMPTS):
            async with self._session_factory() as session:
                idea_id = await next_prefixed_id(session, Idea, IDEA_PREFIX)
                now = utcnow()
                idea = Idea(
                    id=idea_id,
                    title=data.title.strip(),
                    description=data.description or "",
                    status=data.status or "proposed",
                    tags=serialize_tags(data.tags),
                    submitted_by=data.submitted_by or DEFAULT_SUBMITTER,
                    created_at=now,
                    updated_at=now,
                )
                session.add(idea)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    logger.warning("idea_id_collision", idea_id=idea_id)
                    continue
                logger.info("idea_created", idea_id=idea.id, submitted_by=idea.submitted_by)
                return idea_to_response(idea)

        raise ConflictError("Could not allocate a unique idea id.")

    async def update_idea(self, idea_id: str, data: IdeaUpdate) -> IdeaResponse:
        fields = data.model_dump(exclude_unset=True)
        validate_idea(fields, partial=True)

        async with self._session_factory() as session:
            idea = await session.get(Idea, idea_id)
            if idea is None:
                raise NotFoundError(f"Idea {idea_id} not found.")

            if "title" in fields:
                idea.title = fields["title"].strip()
            if "description" in fields:
                idea.description = fields["description"] or ""
            if "tags" in fields:
                idea.tags = serialize_tags(fields["tags"])
            if "status" in fields:
                idea.status = fields["status"]
            if "submitted_by" in fields:
                idea.submitted_by = fields["submitted_by"] or DEFAULT_SUBMITTER
            idea.updated_at = utcnow()
            await session.commit()
            await session.refresh(idea)
            return idea_to_response(idea)

    async def delete_idea(self, idea_id: str) -> None:
        async with self._session_factory() as session:
            idea = await session.get(Idea, idea_id)
            if idea is None:
                raise NotFoundError(f"Idea {idea_id} not found.")
            await session.delete(idea)
            await session.commit()
        logger.info("idea_deleted", idea_id=idea_id)

    async def convert_idea(self, idea_id: str) -> IdeaConversionResponse:
        """Create a backlog ticket from the idea and mark the idea converted.

        Both rows are written in one transaction. An idea that is already
        converted, or already linked to a ticket, is rejected with 409 and no
        ticket is created.
        """
        for _ in range(ID_ATTEMPTS):
            async with self._session_factory() as session:
                idea = await session.get(Idea, idea_id)
                if idea is None:
                    raise NotFoundError(f"Idea {idea_id} not found.")
                if idea.status == "converted":
                    raise ConflictError(f"Idea {idea_id} already converted.")
                if idea.converted_ticket_id:
                    raise ConflictError(
                        f"Idea {idea_id} already has ticket {idea.converted_ticket_id}."
                    )

                ticket_id = await next_prefixed_id(session, Ticket, TICKET_PREFIX)
                ticket = new_ticket(ticket_id, idea.title, idea.description)
                session.add(ticket)
                idea.status = "converted"
                idea.converted_ticket_id = ticket_id
                idea.updated_at = utcnow()
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    logger.warning("ticket_id_collision", ticket_id=ticket_id, idea_id=idea_id)
                    continue

                logger.info("idea_converted", idea_id=idea_id, ticket_id=ticket_id)
                return IdeaConversionResponse(
                    ticket=ticket_to_response(ticket),
                    idea=idea_to_response(idea),
                )

        raise ConflictError("Could not allocate a unique ticket id.")
