from fastapi import APIRouter

from lanmon.schemas.tracker import TicketCreate, TicketListResponse, TicketResponse, TicketUpdate
from lanmon.services.tickets import TicketService

router = APIRouter()

_service = TicketService()


@router.get("/tickets")
async def list_tickets(lane: str | None = None, assignee: str | None = None) -> TicketListResponse:
    return await _service.list_tickets(lane=lane, assignee=assignee)


@router.post("/tickets", status_code=201)
async def create_ticket(body: TicketCreate) -> TicketResponse:
    """Create a ticket. Priority defaults to medium and lane to backlog."""
    return await _service.create_ticket(body)


@router.get("/tickets/{ticket_id}")
async def get_ticket(ticket_id: str) -> TicketResponse:
    return await _service.get_ticket(ticket_id)


@router.put("/tickets/{ticket_id}")
@router.patch("/tickets/{ticket_id}")
async def update_ticket(ticket_id: str, body: TicketUpdate) -> TicketResponse:
    """Partial update; only fields present in the body change."""
    return await _service.update_ticket(ticket_id, body)


@router.delete("/tickets/{ticket_id}", status_code=204)
async def delete_ticket(ticket_id: str) -> None:
    await _service.delete_ticket(ticket_id)
