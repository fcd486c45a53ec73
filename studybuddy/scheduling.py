"""PeriodicTask — asyncio background job with a start/stop lifecycle.

Subclasses implement ``tick``. The loop sleeps ``interval_seconds`` between
ticks; a failing tick is logged and retried after ``retry_delay`` seconds.
Cancellation ends the loop.

Usage:
    job = MemoryCleanupScheduler(store, interval_hours=24)
    await job.start()
    # ... app runs ...
    job.stop()
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``tick`` on a fixed interval while the application is up."""

    label = "Periodic task"
    retry_delay = 60.0

    def __init__(self, interval_seconds: float, enabled: bool = True) -> None:
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self._task: asyncio.Task | None = None
        self._running = False

    async def tick(self) -> None:
        raise NotImplementedError

    async def start(self) -> None:
        if not self.enabled:
            logger.info("%s disabled", self.label)
            return

        if self._running:
            logger.warning("%s already running", self.label)
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("%s started (interval: %.0fs)", self.label, self.interval_seconds)

    def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            logger.info("%s stopped", self.label)

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)
                if not self._running:
                    break
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("%s error: %s", self.label, e, exc_info=True)
                await asyncio.sleep(self.retry_delay)

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()
