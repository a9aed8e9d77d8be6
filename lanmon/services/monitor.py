"""Sweep orchestration: caching, concurrent checks, history and alerts."""

import asyncio
import time
from collections.abc import Callable

import structlog

from lanmon.core.exceptions import BackendUnavailableError, NotFoundError, ValidationError
from lanmon.schemas.gpu import GpuStatus
from lanmon.schemas.services import CheckOutcome, ModelInventory, Target
from lanmon.services.alerts import AlertRecorder
from lanmon.services.cache import SingleSlotCache
from lanmon.services.checks import CheckRunner
from lanmon.services.gpu import GpuReader
from lanmon.services.history import HistoryStore
from lanmon.services.targets import find_target

logger = structlog.get_logger()

DEFAULT_CACHE_TTL = 30.0


def alert_message(outcome: CheckOutcome) -> str:
    if outcome.error:
        reason = outcome.error
    elif outcome.status_code is not None:
        reason = f"HTTP {outcome.status_code}"
    else:
        reason = "no response"
    return f"{outcome.name} is {outcome.status}: {reason}"


class ServiceMonitor:
    """Owns the target registry, both result caches and the sweep policy.

    ``get_services`` and ``get_gpu_status`` serve from their cache while it is
    younger than the TTL. Two callers missing the cache at the same time will
    each run a sweep; whichever finishes last is the one left cached.
    """

    def __init__(
        self,
        targets: list[Target],
        runner: CheckRunner,
        history: HistoryStore,
        alerts: AlertRecorder,
        gpu_reader: GpuReader,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL,
        alert_every_down: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.targets = list(targets)
        self.history = history
        self.alerts = alerts
        self.services_cache: SingleSlotCache[list[CheckOutcome]] = SingleSlotCache(cache_ttl_seconds, clock)
        self.gpu_cache: SingleSlotCache[GpuStatus] = SingleSlotCache(cache_ttl_seconds, clock)
        self._runner = runner
        self._gpu_reader = gpu_reader
        self._alert_every_down = alert_every_down
        self._last_status: dict[str, str] = {}

    @property
    def last_status(self) -> dict[str, str]:
        return dict(self._last_status)

    def get_target(self, target_id: str) -> Target:
        target = find_target(self.targets, target_id)
        if target is None:
            raise NotFoundError(f"Service {target_id} not found.")
        return target

    # ── Services ────────────────────────────────────────────────────────────

    async def get_services(self) -> tuple[list[CheckOutcome], bool]:
        """Return ``(outcomes, cached)``."""
        cached = self.services_cache.get_fresh()
        if cached is not None:
            return cached, True
        # A client disconnect must not abort a sweep halfway through recording
        results = await asyncio.shield(self._refresh_services())
        return results, False

    async def _refresh_services(self) -> list[CheckOutcome]:
        return self.services_cache.store(await self.sweep())

    async def sweep(self) -> list[CheckOutcome]:
        """Check all targets concurrently, then record each outcome."""
        start = time.monotonic()
        outcomes = await self._runner.sweep(self.targets)
        for outcome in outcomes:
            await self._record_outcome(outcome)

        logger.info(
            "sweep_complete",
            targets=len(outcomes),
            down=sum(1 for o in outcomes if o.status == "down"),
            duration_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return outcomes

    async def check_one(self, target_id: str) -> CheckOutcome:
        """Fresh, uncached check of a single target. Not recorded to history."""
        return await self._runner.check(self.get_target(target_id))

    async def model_inventory(self, target_id: str) -> ModelInventory:
        """Installed and loaded models of an inference target.

        Unlike the sweep, this fails loudly: 400 for a target that is not an
        inference server, 503 when the server does not answer its health check.
        """
        target = self.get_target(target_id)
        if target.type != "ollama" or not target.url:
            raise ValidationError([f"Service {target_id} is not an inference server."])

        backend = self._runner.inference_backend(target)
        if not await backend.health_check():
            raise BackendUnavailableError(f"Inference server {target.name} is not responding.")
        return ModelInventory(
            service_id=target.id,
            installed=await backend.list_models(),
            loaded=await backend.list_loaded_models(),
        )

    async def _previous_status(self, target_id: str) -> str | None:
        if target_id in self._last_status:
            return self._last_status[target_id]
        try:
            latest = await self.history.latest(target_id)
        except Exception:
            logger.warning("history_read_failed", service=target_id, exc_info=True)
            return None
        return latest.status if latest else None

    async def _record_outcome(self, outcome: CheckOutcome) -> None:
        """Best-effort history append and alert evaluation; never raises."""
        previous = await self._previous_status(outcome.id)

        try:
            await self.history.record(outcome.id, outcome.status, outcome.response_ms)
        except Exception:
            logger.warning("history_write_failed", service=outcome.id, exc_info=True)

        self._last_status[outcome.id] = outcome.status

        if outcome.status == "down":
            if previous != "down":
                logger.warning("service_down", service=outcome.id, previous=previous, error=outcome.error)
            if self._alert_every_down or previous != "down":
                await self.alerts.record(outcome.id, outcome.name, outcome.status, alert_message(outcome))
        elif previous == "down":
            logger.info("service_recovered", service=outcome.id, status=outcome.status)

    # ── GPU ─────────────────────────────────────────────────────────────────

    async def get_gpu_status(self) -> tuple[GpuStatus, bool]:
        cached = self.gpu_cache.get_fresh()
        if cached is not None:
            return cached, True
        status = await asyncio.shield(self._refresh_gpu())
        return status, False

    async def _refresh_gpu(self) -> GpuStatus:
        return self.gpu_cache.store(await self._gpu_reader.read_status())
