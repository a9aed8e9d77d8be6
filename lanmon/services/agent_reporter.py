"""Agent heartbeat checks and the agent status table they maintain."""

import asyncio
from collections.abc import Callable
from datetime import datetime

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

import lanmon.core.database as db_module
from lanmon.core.database import AgentStatus, utcnow
from lanmon.schemas.agents import AgentTarget

logger = structlog.get_logger()

HEARTBEAT_INTERVAL = 60  # seconds
STATUS_TIMEOUT = 3.0  # seconds per agent
STANDBY_TASK = "standby"

_KEEP = object()


class AgentStatusStore:
    """Upserts and lists rows of the ``agents`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory_override = session_factory
        self._clock = clock

    @property
    def _session_factory(self) -> async_sessionmaker:
        return self._session_factory_override or db_module.async_session

    async def upsert(self, name: str, status: str, current_task=_KEEP) -> AgentStatus:
        """Create or update an agent row. ``current_task`` is kept when omitted."""
        async with self._session_factory() as session:
            row = await session.get(AgentStatus, name)
            if row is None:
                row = AgentStatus(name=name)
                session.add(row)
            row.status = status
            if current_task is not _KEEP:
                row.current_task = current_task
            row.last_update = self._clock()
            await session.commit()
            await session.refresh(row)
            return row

    async def list_statuses(self) -> list[AgentStatus]:
        async with self._session_factory() as session:
            result = await session.execute(select(AgentStatus).order_by(AgentStatus.name))
            return list(result.scalars().all())


class AgentReporter:
    """Polls each agent gateway on a fixed interval and records reachability.

    An agent is reachable when ``GET http://<ip>:<port>/status`` answers with
    any status below 500 within the timeout. Reachable agents are stored as
    ``online`` with task ``standby``; the rest as ``offline`` with no task.
    """

    def __init__(
        self,
        agents: list[AgentTarget],
        http_client: httpx.AsyncClient,
        store: AgentStatusStore,
        interval: float = HEARTBEAT_INTERVAL,
        timeout_s: float = STATUS_TIMEOUT,
    ):
        self._agents = list(agents)
        self._client = http_client
        self._store = store
        self._interval = interval
        self._timeout_s = timeout_s
        self._task: asyncio.Task | None = None
        self._running = False

    async def start(self) -> None:
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("agent_reporter_started", agents=len(self._agents), interval=self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("agent_reporter_stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.check_all()
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("agent_reporter_error")
                await asyncio.sleep(self._interval)

    async def check_agent(self, agent: AgentTarget) -> bool:
        url = f"http://{agent.ip}:{agent.gateway_port}/status"
        try:
            response = await asyncio.wait_for(
                self._client.get(url, timeout=self._timeout_s), timeout=self._timeout_s
            )
        except Exception as e:
            logger.debug("agent_unreachable", agent=agent.name, reason=str(e) or e.__class__.__name__)
            return False
        return response.status_code < 500

    async def check_all(self) -> dict[str, bool]:
        """Check every agent concurrently, then record each result."""
        results = await asyncio.gather(*(self.check_agent(a) for a in self._agents))
        reachability = {}
        for agent, reachable in zip(self._agents, results):
            reachability[agent.name] = reachable
            try:
                if reachable:
                    await self._store.upsert(agent.name, "online", STANDBY_TASK)
                else:
                    await self._store.upsert(agent.name, "offline", None)
            except Exception:
                logger.exception("agent_status_write_failed", agent=agent.name)
        logger.info("agent_heartbeat", online=sum(reachability.values()), total=len(reachability))
        return reachability
