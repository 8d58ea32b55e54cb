"""Background loop that sweeps open jobs for due escalation levels."""

from __future__ import annotations

import asyncio
import logging

from repair_lifecycle.application.use_cases.escalation_scheduler import EscalationScheduler
from repair_lifecycle.domain.errors import LifecycleError

logger = logging.getLogger(__name__)


class EscalationWorker:
    def __init__(self, scheduler: EscalationScheduler, interval_seconds: float = 60.0):
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="escalation-worker")
        logger.info("Escalation worker started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        logger.info("Escalation worker stopped")

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await self._scheduler.run_once()
            except LifecycleError as exc:
                # Store timeouts end this sweep only; the next tick retries.
                logger.warning("Escalation sweep failed: %s", exc)
            except Exception:
                logger.exception("Escalation sweep crashed, retrying in %.0fs", self._interval)
            try:
                await asyncio.wait_for(self._stop.wait(), self._interval)
            except asyncio.TimeoutError:
                pass
