from fastapi import APIRouter

from lanmon.core.database import AgentStatus, as_utc
from lanmon.schemas.agents import AgentStatusInfo, AgentStatusReport, AgentStatusResponse
from lanmon.services.agent_reporter import AgentStatusStore

router = APIRouter()

_store = AgentStatusStore()


def _to_info(row: AgentStatus) -> AgentStatusInfo:
    return AgentStatusInfo(
        id=row.name,
        name=row.name,
        status=row.status,
        current_task=row.current_task,
        last_update=as_utc(row.last_update) if row.last_update else None,
    )


@router.get("/agents/status")
async def list_agent_status() -> AgentStatusResponse:
    """Last known status of every agent, from heartbeats and self-reports."""
    return AgentStatusResponse(agents=[_to_info(r) for r in await _store.list_statuses()])


@router.post("/agents/{name}/status")
async def report_agent_status(name: str, body: AgentStatusReport) -> AgentStatusInfo:
    """Agent self-report. ``currentTask`` is left unchanged when omitted."""
    if "current_task" in body.model_fields_set:
        row = await _store.upsert(name, body.status, body.current_task)
    else:
        row = await _store.upsert(name, body.status)
    return _to_info(row)
