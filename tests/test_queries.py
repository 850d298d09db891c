"""
Tests for the read-through query gateway.

Covers hits/misses, per-entity TTLs, error propagation, the
invalidate-then-refetch flow and concurrent misses.
"""

import asyncio

import pytest

from classpulse.cache.config import CacheTTL
from classpulse.cache.invalidation import CacheInvalidator, MutationKind
from classpulse.cache.keys import EntityType
from classpulse.queries.gateway import QueryGateway
from classpulse.store.exceptions import RecordNotFoundError, StoreError


@pytest.fixture
def roster():
    return [
        {"id": "s2", "first_name": "Ada", "last_name": "Byron"},
        {"id": "s1", "first_name": "Alan", "last_name": "Turing"},
    ]


@pytest.fixture
def gateway(cache, store, roster):
    store.collections[(EntityType.STUDENTS, "t1")] = roster
    store.collections[(EntityType.ASSESSMENTS, "t1")] = [{"id": "a1"}]
    store.collections[(EntityType.GOALS, "s1")] = [{"id": "g1"}]
    store.singletons[(EntityType.PERFORMANCE, "s1")] = {"student_id": "s1", "average_score": 85.0}
    return QueryGateway(cache, store)


class TestQueryGateway:
    """Test cached reads."""

    @pytest.mark.asyncio
    async def test_miss_fetches_and_caches(self, gateway, store, cache, roster):
        students = await gateway.get_students("t1")

        assert students == roster
        assert store.calls_for(EntityType.STUDENTS, "t1") == 1
        assert cache.get("students:t1") == roster

    @pytest.mark.asyncio
    async def test_hit_skips_store(self, gateway, store):
        await gateway.get_students("t1")
        await gateway.get_students("t1")
        assert store.calls_for(EntityType.STUDENTS, "t1") == 1

    @pytest.mark.asyncio
    async def test_empty_collection_is_a_hit(self, gateway, store):
        await gateway.get_goals("s-new")
        await gateway.get_goals("s-new")
        assert store.calls_for(EntityType.GOALS, "s-new") == 1

    @pytest.mark.asyncio
    async def test_owners_are_isolated(self, gateway, store):
        await gateway.get_students("t1")
        assert await gateway.get_students("t2") == []
        assert store.calls_for(EntityType.STUDENTS, "t2") == 1

    @pytest.mark.asyncio
    async def test_all_entities(self, gateway, cache):
        assert await gateway.get_assessments("t1") == [{"id": "a1"}]
        assert await gateway.get_goals("s1") == [{"id": "g1"}]
        performance = await gateway.get_student_performance("s1")
        assert performance["average_score"] == 85.0
        assert set(cache.keys()) == {"assessments:t1", "goals:s1", "performance:s1"}

    @pytest.mark.asyncio
    async def test_entity_ttls(self, gateway, store, clock):
        """Performance (1 min) expires before assessments (3 min)."""
        await gateway.get_student_performance("s1")
        await gateway.get_assessments("t1")

        clock.advance(CacheTTL.PERFORMANCE.total_seconds())

        await gateway.get_student_performance("s1")
        await gateway.get_assessments("t1")

        assert store.calls_for(EntityType.PERFORMANCE, "s1") == 2
        assert store.calls_for(EntityType.ASSESSMENTS, "t1") == 1

    @pytest.mark.asyncio
    async def test_custom_ttls(self, cache, store, clock):
        gateway = QueryGateway(cache, store, ttls=CacheTTL(GOALS=CacheTTL.PERFORMANCE))
        await gateway.get_goals("s1")
        clock.advance(61)
        await gateway.get_goals("s1")
        assert store.calls_for(EntityType.GOALS, "s1") == 2


class TestErrorPropagation:
    """Fetch failures surface to the caller and are never cached."""

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, gateway, store, cache):
        store.fail_on.add((EntityType.STUDENTS, "t1"))

        with pytest.raises(StoreError):
            await gateway.get_students("t1")

        assert "students:t1" not in cache

    @pytest.mark.asyncio
    async def test_failure_not_cached(self, gateway, store, roster):
        store.fail_on.add((EntityType.STUDENTS, "t1"))
        with pytest.raises(StoreError):
            await gateway.get_students("t1")

        store.fail_on.clear()
        assert await gateway.get_students("t1") == roster
        assert store.calls_for(EntityType.STUDENTS, "t1") == 2

    @pytest.mark.asyncio
    async def test_missing_performance(self, gateway):
        with pytest.raises(RecordNotFoundError):
            await gateway.get_student_performance("s-unsynced")


class TestInvalidateThenRefetch:
    """Mutation -> invalidation -> next read misses -> refetch."""

    @pytest.mark.asyncio
    async def test_mutation_forces_refetch(self, gateway, store, cache):
        invalidator = CacheInvalidator(cache)
        await gateway.get_goals("s1")

        async def add_goal():
            store.collections[(EntityType.GOALS, "s1")].insert(0, {"id": "g2"})

        await invalidator.run_mutation(MutationKind.GOAL_CREATED, add_goal, student_id="s1")

        goals = await gateway.get_goals("s1")
        assert [g["id"] for g in goals] == ["g2", "g1"]
        assert store.calls_for(EntityType.GOALS, "s1") == 2


class TestConcurrentMisses:
    """Cache stampede behaviour."""

    @pytest.mark.asyncio
    async def test_without_coalescing_each_miss_fetches(self, cache, store):
        store.delay = 0.01
        gateway = QueryGateway(cache, store)

        results = await asyncio.gather(*(gateway.get_students("t1") for _ in range(3)))

        assert results == [[], [], []]
        assert store.calls_for(EntityType.STUDENTS, "t1") == 3
        assert "students:t1" in cache

    @pytest.mark.asyncio
    async def test_coalescing_shares_one_fetch(self, cache, store):
        store.delay = 0.01
        store.collections[(EntityType.STUDENTS, "t1")] = [{"id": "s1"}]
        gateway = QueryGateway(cache, store, coalesce=True)

        results = await asyncio.gather(*(gateway.get_students("t1") for _ in range(5)))

        assert all(r == [{"id": "s1"}] for r in results)
        assert store.calls_for(EntityType.STUDENTS, "t1") == 1

    @pytest.mark.asyncio
    async def test_coalesced_failure_reaches_every_waiter(self, cache, store):
        store.delay = 0.01
        store.fail_on.add((EntityType.GOALS, "s1"))
        gateway = QueryGateway(cache, store, coalesce=True)

        results = await asyncio.gather(
            *(gateway.get_goals("s1") for _ in range(3)),
            return_exceptions=True,
        )

        assert all(isinstance(r, StoreError) for r in results)
        assert store.calls_for(EntityType.GOALS, "s1") == 1

        # In-flight entry released: the next call fetches again
        store.fail_on.clear()
        assert await gateway.get_goals("s1") == []
        assert store.calls_for(EntityType.GOALS, "s1") == 2
