"""Kanban tickets with sequential ``TASK-NNN`` ids."""

import structlog
from sqlalchemy import Integer, cast, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import lanmon.core.database as db_module
from lanmon.core.database import Ticket, as_utc, utcnow
from lanmon.core.exceptions import ConflictError, NotFoundError, ValidationError
from lanmon.schemas.tracker import (
    TICKET_LANES,
    TICKET_PRIORITIES,
    TicketCreate,
    TicketListResponse,
    TicketResponse,
    TicketUpdate,
)

logger = structlog.get_logger()

TICKET_PREFIX = "TASK"
DEFAULT_PRIORITY = "medium"
DEFAULT_LANE = "backlog"
# Attempts at allocating a fresh id before giving up on a colliding insert
ID_ATTEMPTS = 5


def format_id(prefix: str, number: int) -> str:
    return f"{prefix}-{number:03d}"


async def next_prefixed_id(session: AsyncSession, model, prefix: str) -> str:
    """Highest existing ``PREFIX-NNN`` suffix plus one, from a single query."""
    suffix = func.substr(model.id, len(prefix) + 2)
    result = await session.execute(
        select(func.max(cast(suffix, Integer))).where(model.id.like(f"{prefix}-%"))
    )
    return format_id(prefix, (result.scalar() or 0) + 1)


def ticket_to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse(
        id=ticket.id,
        title=ticket.title,
        description=ticket.description or "",
        priority=ticket.priority,
        lane=ticket.lane,
        assignee=ticket.assignee,
        branch=ticket.branch,
        created_at=as_utc(ticket.created_at),
        updated_at=as_utc(ticket.updated_at),
    )


def _check_choices(fields: dict, errors: list[str]) -> None:
    if fields.get("priority") is not None and fields["priority"] not in TICKET_PRIORITIES:
        errors.append(f"Priority must be one of: {', '.join(TICKET_PRIORITIES)}")
    if fields.get("lane") is not None and fields["lane"] not in TICKET_LANES:
        errors.append(f"Lane must be one of: {', '.join(TICKET_LANES)}")


def validate_ticket_create(data: TicketCreate) -> None:
    errors = []
    if not data.title or not data.title.strip():
        errors.append("Title is required")
    _check_choices(data.model_dump(), errors)
    if errors:
        raise ValidationError(errors)


def validate_ticket_update(fields: dict) -> None:
    errors = []
    if "title" in fields and (not fields["title"] or not fields["title"].strip()):
        errors.append("Title cannot be empty")
    for key in ("priority", "lane"):
        if key in fields and fields[key] is None:
            errors.append(f"{key.capitalize()} cannot be null")
    _check_choices(fields, errors)
    if errors:
        raise ValidationError(errors)


def new_ticket(ticket_id: str, title: str, description: str | None = None, **fields) -> Ticket:
    now = utcnow()
    return Ticket(
        id=ticket_id,
        title=title.strip(),
        description=description or "",
        priority=fields.get("priority") or DEFAULT_PRIORITY,
        lane=fields.get("lane") or DEFAULT_LANE,
        assignee=fields.get("assignee"),
        branch=fields.get("branch"),
        created_at=now,
        updated_at=now,
    )


class TicketService:
    def __init__(self, session_factory: async_sessionmaker | None = None):
        self._session_factory_override = session_factory

    @property
    def _session_factory(self) -> async_sessionmaker:
        return self._session_factory_override or db_module.async_session

    async def list_tickets(self, lane: str | None = None, assignee: str | None = None) -> TicketListResponse:
        stmt = select(Ticket)
        if lane:
            stmt = stmt.where(Ticket.lane == lane)
        if assignee:
            stmt = stmt.where(Ticket.assignee == assignee)
        stmt = stmt.order_by(Ticket.created_at.asc(), Ticket.id.asc())

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            tickets = [ticket_to_response(t) for t in result.scalars().all()]
        return TicketListResponse(tickets=tickets, total=len(tickets))

    async def get_ticket(self, ticket_id: str) -> TicketResponse:
        async with self._session_factory() as session:
            ticket = await session.get(Ticket, ticket_id)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found.")
            return ticket_to_response(ticket)

    async def create_ticket(self, data: TicketCreate) -> TicketResponse:
        validate_ticket_create(data)
        fields = data.model_dump(exclude={"title", "description"})

        for _ in range(ID_ATTEMPTS):
            async with self._session_factory() as session:
                ticket_id = await next_prefixed_id(session, Ticket, TICKET_PREFIX)
                ticket = new_ticket(ticket_id, data.title, data.description, **fields)
                session.add(ticket)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    logger.warning("ticket_id_collision", ticket_id=ticket_id)
                    continue
                logger.info("ticket_created", ticket_id=ticket.id, lane=ticket.lane)
                return ticket_to_response(ticket)

        raise ConflictError("Could not allocate a unique ticket id.")

    async def update_ticket(self, ticket_id: str, data: TicketUpdate) -> TicketResponse:
        fields = data.model_dump(exclude_unset=True)
        validate_ticket_update(fields)

        async with self._session_factory() as session:
            ticket = await session.get(Ticket, ticket_id)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found.")

            for key, value in fields.items():
                if key == "title":
                    value = value.strip()
                elif key == "description":
                    value = value or ""
                setattr(ticket, key, value)
            ticket.updated_at = utcnow()
            await session.commit()
            await session.refresh(ticket)
            return ticket_to_response(ticket)

    async def delete_ticket(self, ticket_id: str) -> None:
        async with self._session_factory() as session:
            ticket = await session.get(Ticket, ticket_id)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found.")
            await session.delete(ticket)
            await session.commit()
        logger.info("ticket_deleted", ticket_id=ticket_id)
