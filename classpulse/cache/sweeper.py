"""
Cache Sweeper

Optional background task that drops expired entries.
Expiry is already enforced on read; sweeping only bounds memory when a
session touches many distinct owners.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from classpulse.cache.store import CacheStore


logger = logging.getLogger(__name__)


class CacheSweeper:
    """Periodically purges expired cache entries."""

    def __init__(self, cache: CacheStore, interval: timedelta = timedelta(minutes=1)):
        if interval.total_seconds() <= 0:
            raise ValueError(f"Sweep interval must be positive, got {interval}")
        self._cache = cache
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        removed = self._cache.purge_expired()
        if removed:
            logger.info(f"Cache sweep: removed {removed} expired entries")
        return removed

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval.total_seconds())
            self.sweep_once()

    def start(self) -> None:
        """Start sweeping on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Cache sweeper started (every {self.interval.total_seconds():.0f}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Cache sweeper stopped")
