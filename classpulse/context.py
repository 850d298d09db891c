"""
Session Wiring

One CacheContext per signed-in session: a single CacheStore shared by the
query gateway, the invalidator and the performance sync. Tests build a
fresh context per case instead of sharing a module-level cache.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from classpulse.cache.config import CacheConfig, get_cache_config
from classpulse.cache.invalidation import CacheInvalidator, InvalidationResult, MutationKind
from classpulse.cache.monitoring import CacheMonitor
from classpulse.cache.store import CacheStore, Clock
from classpulse.cache.sweeper import CacheSweeper
from classpulse.performance.sync import PerformanceSync
from classpulse.queries.gateway import QueryGateway
from classpulse.store.base import DataStore

logger = logging.getLogger(__name__)


@dataclass
class CacheContext:
    cache: CacheStore
    invalidator: CacheInvalidator
    queries: QueryGateway
    performance: PerformanceSync
    monitor: CacheMonitor
    sweeper: Optional[CacheSweeper] = None

    async def start(self) -> None:
        if self.sweeper is not None:
            self.sweeper.start()

    async def sign_out(self) -> InvalidationResult:
        """Stop background work and drop everything cached for the session."""
        if self.sweeper is not None:
            await self.sweeper.stop()
        return self.invalidator.handle(MutationKind.SESSION_ENDED)


def build_context(
    store: DataStore,
    config: Optional[CacheConfig] = None,
    clock: Optional[Clock] = None,
) -> CacheContext:
    """Wire a session's cache components around ``store``."""
    config = config or get_cache_config()
    ttls = config.ttls()

    cache = CacheStore(default_ttl=ttls.DEFAULT, clock=clock, enabled=config.enabled)
    invalidator = CacheInvalidator(cache)

    sweeper = None
    if config.sweep_interval_seconds > 0:
        sweeper = CacheSweeper(cache, timedelta(seconds=config.sweep_interval_seconds))

    logger.debug(
        f"Cache context built (enabled={config.enabled}, "
        f"coalesce={config.coalesce_requests}, sweep={sweeper is not None})"
    )

    return CacheContext(
        cache=cache,
        invalidator=invalidator,
        queries=QueryGateway(cache, store, ttls=ttls, coalesce=config.coalesce_requests),
        performance=PerformanceSync(store, invalidator=invalidator),
        monitor=CacheMonitor(cache, config=config),
        sweeper=sweeper,
    )
