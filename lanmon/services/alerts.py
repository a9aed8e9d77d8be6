"""Append-only alert log with age-based pruning."""

from collections.abc import Callable
from datetime import datetime, timedelta

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

import lanmon.core.database as db_module
from lanmon.core.database import Alert, utcnow

logger = structlog.get_logger()

DEFAULT_LIMIT = 50


class AlertRecorder:
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

    async def record(self, target_id: str, name: str, status: str, message: str) -> bool:
        """Store one alert. Storage failures are logged and reported as False."""
        try:
            async with self._session_factory() as session:
                session.add(Alert(
                    service_id=target_id,
                    service_name=name,
                    status=status,
                    message=message,
                    created_at=self._clock(),
                ))
                await session.commit()
        except Exception:
            logger.exception("alert_record_failed", service=target_id)
            return False
        logger.warning("alert_recorded", service=target_id, status=status, message=message)
        return True

    async def recent(self, limit: int = DEFAULT_LIMIT) -> list[Alert]:
        """Most recent alerts first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def for_target(self, target_id: str, limit: int = DEFAULT_LIMIT) -> list[Alert]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Alert)
                .where(Alert.service_id == target_id)
                .order_by(Alert.created_at.desc(), Alert.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def prune(self, max_age_days: int = 7) -> int:
        """Delete alerts older than ``max_age_days``; returns how many went."""
        cutoff = self._clock() - timedelta(days=max_age_days)
        async with self._session_factory() as session:
            result = await session.execute(delete(Alert).where(Alert.created_at < cutoff))
            await session.commit()
        removed = result.rowcount or 0
        if removed:
            logger.info("alerts_pruned", removed=removed, max_age_days=max_age_days)
        return removed
