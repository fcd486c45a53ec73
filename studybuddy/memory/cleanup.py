"""Periodic purge of memories past their retention window."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from studybuddy.memory.store import MemoryStore
from studybuddy.scheduling import PeriodicTask

logger = logging.getLogger(__name__)


class MemoryCleanupScheduler(PeriodicTask):
    """Deletes expired memories every ``interval_hours``, ``batch_size`` rows per commit."""

    label = "Memory cleanup scheduler"

    def __init__(
        self,
        store: MemoryStore,
        interval_hours: float = 24.0,
        batch_size: int = 100,
        enabled: bool = True,
    ) -> None:
        super().__init__(interval_hours * 3600, enabled=enabled)
        self.store = store
        self.batch_size = batch_size
        self.last_run: datetime | None = None
        self.last_purged = 0

    async def tick(self) -> None:
        await self.run_once()

    async def run_once(self) -> int:
        """Purge expired memories now. Returns the number deleted."""
        purged = await self.store.purge_expired(batch_size=self.batch_size)
        self.last_run = datetime.now(timezone.utc)
        self.last_purged = purged
        if purged:
            logger.info("Memory cleanup removed %d expired memories", purged)
        return purged

    def get_status(self) -> dict:
        return {
            "enabled": self.enabled,
            "running": self.is_running,
            "interval_hours": self.interval_seconds / 3600,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_purged": self.last_purged,
        }
