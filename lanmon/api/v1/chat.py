from fastapi import APIRouter, Depends, Query

from lanmon.dependencies import get_chat_relay
from lanmon.schemas.agents import ChatResponse, PresenceResponse
from lanmon.services.chat_relay import DEFAULT_MESSAGE_COUNT, ChatRelay

router = APIRouter()


@router.get("/redis/chat")
async def chat_messages(
    count: int = Query(DEFAULT_MESSAGE_COUNT, ge=1, le=1000),
    relay: ChatRelay = Depends(get_chat_relay),
) -> ChatResponse:
    messages = await relay.recent_messages(count)
    return ChatResponse(messages=messages, count=len(messages))


@router.get("/redis/status")
async def agent_presence(relay: ChatRelay = Depends(get_chat_relay)) -> PresenceResponse:
    return PresenceResponse(agents=await relay.presence())
