"""Background sweeper: keeps the services cache warm and prunes old alerts."""

import asyncio
import time

import structlog

from lanmon.services.monitor import ServiceMonitor

logger = structlog.get_logger()

POLL_INTERVAL = 30  # seconds
PRUNE_INTERVAL = 3600  # seconds


class SweepPoller:
    """Runs ``ServiceMonitor.get_services`` on a fixed interval.

    History and alerts therefore accumulate even when no dashboard is open.
    The poller goes through the cache, so a request that just swept does not
    cause a second sweep here.
    """

    def __init__(
        self,
        monitor: ServiceMonitor,
        interval: float = POLL_INTERVAL,
        alert_retention_days: int = 7,
        prune_interval: float = PRUNE_INTERVAL,
    ):
        self._monitor = monitor
        self._interval = interval
        self._alert_retention_days = alert_retention_days
        self._prune_interval = prune_interval
        self._last_prune = time.monotonic()
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background polling task."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("sweep_poller_started", interval=self._interval, targets=len(self._monitor.targets))

    async def stop(self) -> None:
        """Stop the background polling task."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("sweep_poller_stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("sweep_poller_error")
                await asyncio.sleep(self._interval)

    async def run_once(self) -> None:
        """One tick: refresh services, then prune alerts if an hour has passed."""
        await self._monitor.get_services()
        if time.monotonic() - self._last_prune >= self._prune_interval:
            self._last_prune = time.monotonic()
            try:
                await self._monitor.alerts.prune(self._alert_retention_days)
            except Exception:
                logger.exception("alert_prune_failed")
