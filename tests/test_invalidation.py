"""
Tests for mutation-driven cache invalidation.

Covers the central invalidation table, the named dispatcher operations
and the mutation wrappers.
"""

import pytest

from classpulse.cache.invalidation import (
    INVALIDATION_TABLE,
    CacheInvalidator,
    MutationKind,
    keys_for,
)


@pytest.fixture
def invalidator(cache):
    return CacheInvalidator(cache)


@pytest.fixture
def populated(cache):
    """Cache holding every entity for teacher t1 and students s1/s2."""
    for key in (
        "students:t1", "assessments:t1",
        "performance:s1", "goals:s1",
        "performance:s2", "goals:s2",
        "students:t2",
    ):
        cache.set(key, [key])
    return cache


# =============================================================================
# TABLE TESTS
# =============================================================================

class TestInvalidationTable:
    """Test the mutation -> keys mapping."""

    def test_every_mutation_is_mapped(self):
        assert set(INVALIDATION_TABLE) == set(MutationKind)

    def test_student_mutation_keys(self):
        assert keys_for(MutationKind.STUDENT_UPDATED, owner_id="t1", student_id="s1") == [
            "students:t1", "performance:s1", "goals:s1",
        ]

    def test_student_mutation_without_student(self):
        assert keys_for(MutationKind.STUDENT_CREATED, owner_id="t1") == ["students:t1"]

    def test_assessment_mutation_keys(self):
        assert keys_for(MutationKind.ASSESSMENT_DELETED, owner_id="t1") == ["assessments:t1"]

    def test_response_mutation_keys(self):
        assert keys_for(MutationKind.RESPONSE_CREATED, owner_id="t1", student_id="s1") == [
            "performance:s1",
        ]

    def test_goal_mutation_keys(self):
        assert keys_for(MutationKind.GOAL_UPDATED, student_id="s1") == ["goals:s1"]

    def test_missing_ids_yield_no_keys(self):
        assert keys_for(MutationKind.GOAL_UPDATED) == []


# =============================================================================
# DISPATCHER TESTS
# =============================================================================

class TestCacheInvalidator:
    """Test named dispatcher operations."""

    def test_invalidate_student_data_with_student(self, invalidator, populated):
        result = invalidator.invalidate_student_data("t1", "s1")

        assert result.keys_invalidated == 3
        assert populated.get("students:t1") is None
        assert populated.get("performance:s1") is None
        assert populated.get("goals:s1") is None
        # Untouched
        assert populated.get("performance:s2") == ["performance:s2"]
        assert populated.get("students:t2") == ["students:t2"]
        assert populated.get("assessments:t1") == ["assessments:t1"]

    def test_invalidate_student_data_roster_only(self, invalidator, populated):
        invalidator.invalidate_student_data("t1")
        assert populated.get("students:t1") is None
        assert populated.get("performance:s1") == ["performance:s1"]

    def test_invalidate_assessment_data(self, invalidator, populated):
        result = invalidator.invalidate_assessment_data("t1")
        assert result.keys == ["assessments:t1"]
        assert populated.get("assessments:t1") is None
        assert populated.get("students:t1") == ["students:t1"]

    def test_invalidate_goal_data(self, invalidator, populated):
        invalidator.invalidate_goal_data("s2")
        assert populated.get("goals:s2") is None
        assert populated.get("goals:s1") == ["goals:s1"]

    def test_idempotent(self, invalidator, cache):
        """Safe to call with nothing cached, any number of times."""
        first = invalidator.invalidate_student_data("t1", "s1")
        second = invalidator.invalidate_student_data("t1", "s1")
        assert first.keys_invalidated == 0
        assert second.keys_invalidated == 0

    def test_session_ended_clears_everything(self, invalidator, populated):
        result = invalidator.handle(MutationKind.SESSION_ENDED)
        assert result.cleared is True
        assert result.keys_invalidated == 7
        assert len(populated) == 0


# =============================================================================
# MUTATION WRAPPER TESTS
# =============================================================================

class TestMutationWrappers:
    """Test run_mutation and the invalidates decorator."""

    @pytest.mark.asyncio
    async def test_run_mutation_invalidates_after_success(self, invalidator, populated):
        seen_during_mutation = []

        async def save_response():
            seen_during_mutation.append(populated.get("performance:s1"))
            return {"id": "r1"}

        result = await invalidator.run_mutation(
            MutationKind.RESPONSE_CREATED, save_response, owner_id="t1", student_id="s1",
        )

        assert result == {"id": "r1"}
        assert seen_during_mutation == [["performance:s1"]]
        assert populated.get("performance:s1") is None

    @pytest.mark.asyncio
    async def test_run_mutation_invalidates_on_failure(self, invalidator, populated):
        async def failing():
            raise RuntimeError("write failed")

        with pytest.raises(RuntimeError, match="write failed"):
            await invalidator.run_mutation(MutationKind.GOAL_DELETED, failing, student_id="s1")

        assert populated.get("goals:s1") is None

    @pytest.mark.asyncio
    async def test_decorator(self, invalidator, populated):
        @invalidator.invalidates(MutationKind.ASSESSMENT_CREATED)
        async def create_assessment(title, *, owner_id):
            return {"title": title, "teacher_id": owner_id}

        created = await create_assessment("Fractions quiz", owner_id="t1")

        assert created == {"title": "Fractions quiz", "teacher_id": "t1"}
        assert create_assessment.__name__ == "create_assessment"
        assert populated.get("assessments:t1") is None
        assert populated.get("students:t1") == ["students:t1"]
