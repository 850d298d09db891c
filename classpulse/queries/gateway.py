"""
Query Gateway

Read-through access to the data store, one operation per entity:
1. Build the cache key from the owner/entity id
2. Return the cached value on a hit (no network call)
3. On a miss fetch from the store, cache with the entity TTL, return

Fetch errors propagate unchanged and are never cached. There is no
internal retry; the caller owns retry/backoff.

Concurrent misses for the same key each fetch and the last writer wins,
unless ``coalesce=True``, in which case they share one in-flight fetch.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from classpulse.cache.config import CacheTTL
from classpulse.cache.keys import (
    EntityType,
    assessments_key,
    goals_key,
    performance_key,
    students_key,
)
from classpulse.cache.store import CacheStore
from classpulse.store.base import DataStore

logger = logging.getLogger(__name__)


class QueryGateway:
    """Cached queries for students, assessments, performance and goals."""

    def __init__(
        self,
        cache: CacheStore,
        store: DataStore,
        ttls: Optional[CacheTTL] = None,
        coalesce: bool = False,
    ):
        self._cache = cache
        self._store = store
        self._ttls = ttls or CacheTTL()
        self._coalesce = coalesce
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def get_students(self, teacher_id: str) -> List[Dict[str, Any]]:
        """Teacher's roster, ordered by last name."""
        return await self._cached(
            students_key(teacher_id),
            self._ttls.STUDENTS,
            lambda: self._store.fetch_collection(EntityType.STUDENTS, teacher_id),
        )

    async def get_assessments(self, teacher_id: str) -> List[Dict[str, Any]]:
        """Teacher's 50 most recent assessments, newest first."""
        return await self._cached(
            assessments_key(teacher_id),
            self._ttls.ASSESSMENTS,
            lambda: self._store.fetch_collection(EntityType.ASSESSMENTS, teacher_id),
        )

    async def get_student_performance(self, student_id: str) -> Dict[str, Any]:
        """
        Student's performance summary.

        Raises:
            RecordNotFoundError: If the student has never been synced
        """
        return await self._cached(
            performance_key(student_id),
            self._ttls.PERFORMANCE,
            lambda: self._store.fetch_singleton(EntityType.PERFORMANCE, student_id),
        )

    async def get_goals(self, student_id: str) -> List[Dict[str, Any]]:
        """Student's goals, newest first."""
        return await self._cached(
            goals_key(student_id),
            self._ttls.GOALS,
            lambda: self._store.fetch_collection(EntityType.GOALS, student_id),
        )

    # =========================================================================
    # Read-through core
    # =========================================================================

    async def _cached(
        self,
        key: str,
        ttl: timedelta,
        fetch: Callable[[], Awaitable[Any]],
    ) -> Any:
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        logger.debug(f"Cache miss for {key}, fetching...")

        if not self._coalesce:
            return await self._fetch_and_store(key, ttl, fetch)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, ttl, fetch))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")

        # shield: one cancelled waiter must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        key: str,
        ttl: timedelta,
        fetch: Callable[[], Awaitable[Any]],
    ) -> Any:
        data = await fetch()
        self._cache.set(key, data, ttl)
        return data
