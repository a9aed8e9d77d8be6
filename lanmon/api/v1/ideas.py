from fastapi import APIRouter

from lanmon.schemas.tracker import (
    IdeaConversionResponse,
    IdeaCreate,
    IdeaListResponse,
    IdeaResponse,
    IdeaUpdate,
)
from lanmon.services.ideas import IdeaService

router = APIRouter()

_service = IdeaService()


@router.get("/ideas")
async def list_ideas(
    status: str | None = None,
    tag: str | None = None,
    sort: str | None = None,
    order: str | None = None,
) -> IdeaListResponse:
    """List ideas, newest first unless ``sort``/``order`` say otherwise."""
    return await _service.list_ideas(status=status, tag=tag, sort=sort, order=order)


@router.post("/ideas", status_code=201)
async def create_idea(body: IdeaCreate) -> IdeaResponse:
    return await _service.create_idea(body)


@router.get("/ideas/{idea_id}")
async def get_idea(idea_id: str) -> IdeaResponse:
    return await _service.get_idea(idea_id)


@router.put("/ideas/{idea_id}")
@router.patch("/ideas/{idea_id}")
async def update_idea(idea_id: str, body: IdeaUpdate) -> IdeaResponse:
    return await _service.update_idea(idea_id, body)


@router.delete("/ideas/{idea_id}", status_code=204)
async def delete_idea(idea_id: str) -> None:
    await _service.delete_idea(idea_id)


@router.post("/ideas/{idea_id}/convert", status_code=201)
async def convert_idea(idea_id: str) -> IdeaConversionResponse:
    """Promote an idea to a backlog ticket (409 if already converted)."""
    return await _service.convert_idea(idea_id)
