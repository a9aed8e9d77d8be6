"""Per-target check history with a rolling retention window."""

from collections.abc import Callable
from datetime import datetime, timedelta

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

import lanmon.core.database as db_module
from lanmon.core.database import HistoryEntry, utcnow

logger = structlog.get_logger()

MIN_HOURS = 1
MAX_HOURS = 168
DEFAULT_HOURS = 24
DEFAULT_RETENTION_DAYS = 7


def clamp_hours(hours: int | None) -> int:
    if hours is None:
        return DEFAULT_HOURS
    return max(MIN_HOURS, min(MAX_HOURS, int(hours)))


class HistoryStore:
    def __init__(
        self,
        session_factory: async_sessionmaker | None = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory_override = session_factory
        self._retention = timedelta(days=retention_days)
        self._clock = clock

    @property
    def _session_factory(self) -> async_sessionmaker:
        return self._session_factory_override or db_module.async_session

    async def record(self, target_id: str, status: str, response_ms: int | None) -> HistoryEntry:
        """Append one sample, then drop this target's samples past retention.

        Append and prune commit together, so a failure leaves the stored
        series exactly as it was.
        """
        now = self._clock()
        entry = HistoryEntry(
            service_id=target_id,
            timestamp=now,
            status=status,
            response_ms=response_ms,
        )
        async with self._session_factory() as session:
            session.add(entry)
            await session.execute(
                delete(HistoryEntry).where(
                    HistoryEntry.service_id == target_id,
                    HistoryEntry.timestamp <= now - self._retention,
                )
            )
            await session.commit()
        return entry

    async def query(self, target_id: str, hours: int | None = DEFAULT_HOURS) -> list[HistoryEntry]:
        """Entries within the trailing window, oldest first."""
        cutoff = self._clock() - timedelta(hours=clamp_hours(hours))
        async with self._session_factory() as session:
            result = await session.execute(
                select(HistoryEntry)
                .where(
                    HistoryEntry.service_id == target_id,
                    HistoryEntry.timestamp > cutoff,
                )
                .order_by(HistoryEntry.timestamp.asc(), HistoryEntry.id.asc())
            )
            return list(result.scalars().all())

    async def latest(self, target_id: str) -> HistoryEntry | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(HistoryEntry)
                .where(HistoryEntry.service_id == target_id)
                .order_by(HistoryEntry.timestamp.desc(), HistoryEntry.id.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def clear(self, target_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(HistoryEntry).where(HistoryEntry.service_id == target_id)
            )
            await session.commit()
        logger.info("history_cleared", service=target_id, removed=result.rowcount)
        return result.rowcount or 0

    async def all_history(self) -> dict[str, list[HistoryEntry]]:
        """Every retained entry, grouped by target, oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(HistoryEntry).order_by(
                    HistoryEntry.service_id, HistoryEntry.timestamp.asc(), HistoryEntry.id.asc()
                )
            )
            grouped: dict[str, list[HistoryEntry]] = {}
            for entry in result.scalars().all():
                grouped.setdefault(entry.service_id, []).append(entry)
            return grouped
