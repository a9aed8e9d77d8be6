"""Read-only relay of the agents' Redis chat stream and presence hashes."""

import redis.asyncio as redis
import structlog

from lanmon.core.exceptions import LanMonitorError
from lanmon.core.redis import get_redis
from lanmon.schemas.agents import ChatMessage, PresenceInfo

logger = structlog.get_logger()

DEFAULT_STREAM = "openclaw:chat"
DEFAULT_PRESENCE_PREFIX = "openclaw:agents:"
DEFAULT_MESSAGE_COUNT = 50


class RelayError(LanMonitorError):
    def __init__(self, message: str):
        super().__init__(code="relay_error", message=message, status=500)


class ChatRelay:
    def __init__(
        self,
        agents: list[str],
        stream: str = DEFAULT_STREAM,
        presence_prefix: str = DEFAULT_PRESENCE_PREFIX,
        client: redis.Redis | None = None,
    ):
        self.agents = list(agents)
        self._stream = stream
        self._presence_prefix = presence_prefix
        self._client = client

    async def _redis(self) -> redis.Redis:
        return self._client or await get_redis()

    async def recent_messages(self, count: int = DEFAULT_MESSAGE_COUNT) -> list[ChatMessage]:
        """Latest ``count`` stream entries, newest first."""
        try:
            client = await self._redis()
            raw = await client.xrevrange(self._stream, "+", "-", count=count)
        except redis.RedisError as e:
            logger.warning("chat_relay_failed", stream=self._stream, error=str(e))
            raise RelayError(str(e))

        return [
            ChatMessage(
                id=entry_id,
                sender=fields.get("from", ""),
                text=fields.get("text", ""),
                ts=fields.get("ts", ""),
            )
            for entry_id, fields in raw
        ]

    async def presence(self) -> dict[str, PresenceInfo]:
        """Presence hash per configured agent; missing hashes read as unknown."""
        try:
            client = await self._redis()
            agents = {}
            for name in self.agents:
                data = await client.hgetall(f"{self._presence_prefix}{name}")
                agents[name] = PresenceInfo(
                    status=data.get("status") or "unknown",
                    last_task=data.get("lastTask") or data.get("task") or "",
                    last_active=data.get("lastActive") or data.get("ts") or "",
                )
        except redis.RedisError as e:
            logger.warning("presence_relay_failed", error=str(e))
            raise RelayError(str(e))
        return agents
