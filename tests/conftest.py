"""
Pytest Configuration and Shared Fixtures

Provides a controllable clock, an in-memory data store and sample
responses for all test modules.
"""

import asyncio
from datetime import date
from typing import Any, Dict, List, Optional, Set

import pytest

from classpulse.cache.keys import EntityType
from classpulse.cache.store import CacheStore
from classpulse.store.base import DataStore
from classpulse.store.exceptions import RecordNotFoundError, StoreError


# ============================================================================
# Fakes
# ============================================================================

class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeStore(DataStore):
    """
    In-memory DataStore.

    ``collections[(entity, owner_id)]`` holds rows, ``singletons[(entity, id)]``
    single rows. Failures are injected per entity/id via ``fail_on``.
    """

    def __init__(self, delay: float = 0.0):
        self.collections: Dict[tuple, List[Dict[str, Any]]] = {}
        self.singletons: Dict[tuple, Dict[str, Any]] = {}
        self.fail_on: Set[tuple] = set()
        self.calls: List[tuple] = []
        self.upserts: List[tuple] = []
        self.delay = delay

    async def _maybe_fail(self, entity: EntityType, identifier: str):
        self.calls.append((entity, identifier))
        if self.delay:
            await asyncio.sleep(self.delay)
        if (entity, identifier) in self.fail_on:
            raise StoreError(f"Injected failure for {entity.value}:{identifier}", entity=entity.value)

    async def fetch_collection(self, entity: EntityType, owner_id: str) -> List[Dict[str, Any]]:
        await self._maybe_fail(entity, owner_id)
        return list(self.collections.get((entity, owner_id), []))

    async def fetch_singleton(self, entity: EntityType, identifier: str) -> Dict[str, Any]:
        await self._maybe_fail(entity, identifier)
        row = self.singletons.get((entity, identifier))
        if row is None:
            raise RecordNotFoundError(f"No {entity.value} for {identifier}", entity=entity.value)
        return dict(row)

    async def upsert(self, entity: EntityType, key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        if (EntityType.PERFORMANCE, key) in self.fail_on and entity == EntityType.PERFORMANCE:
            raise StoreError(f"Injected upsert failure for {key}", entity=entity.value)
        self.upserts.append((entity, key, dict(record)))
        self.singletons[(entity, key)] = dict(record)
        return dict(record)

    def calls_for(self, entity: EntityType, identifier: Optional[str] = None) -> int:
        return sum(
            1 for e, i in self.calls
            if e == entity and (identifier is None or i == identifier)
        )


def response_row(
    student_id: str,
    score: float,
    max_score: float,
    assessment_date: Optional[str],
    item_id: Optional[str] = None,
    assessment_id: str = "a-1",
    response_id: Optional[str] = None,
) -> Dict[str, Any]:
    """A student_responses row shaped like the Supabase select."""
    return {
        "id": response_id or f"r-{student_id}-{item_id or score}-{assessment_date}",
        "student_id": student_id,
        "score": score,
        "assessment_id": assessment_id,
        "assessment_item_id": item_id,
        "created_at": "2024-01-01T08:00:00+00:00",
        "assessment_items": {"max_score": max_score},
        "assessments": {"assessment_date": assessment_date},
    }


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> CacheStore:
    return CacheStore(clock=clock)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def d1() -> date:
    return date(2024, 3, 1)


@pytest.fixture
def d2() -> date:
    return date(2024, 3, 15)


@pytest.fixture
def make_row():
    return response_row
