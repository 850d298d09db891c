"""
Cache Invalidation Service

Mutation-driven cache invalidation.
Principle: every mutation path purges exactly the keys its data feeds.

The mapping lives in INVALIDATION_TABLE so it can be audited in one place:
- Student mutations: roster + that student's performance and goals
- Assessment mutations: the teacher's assessment list
- Response mutations: the student's performance summary
- Goal mutations: the student's goals
- Session end: everything
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from classpulse.cache.keys import EntityType, make_key
from classpulse.cache.store import CacheStore


logger = logging.getLogger(__name__)


class MutationKind(Enum):
    """Mutations that change cached data."""

    STUDENT_CREATED = "student_created"
    STUDENT_UPDATED = "student_updated"
    STUDENT_DELETED = "student_deleted"

    ASSESSMENT_CREATED = "assessment_created"
    ASSESSMENT_UPDATED = "assessment_updated"
    ASSESSMENT_DELETED = "assessment_deleted"

    RESPONSE_CREATED = "response_created"
    RESPONSE_UPDATED = "response_updated"
    RESPONSE_DELETED = "response_deleted"

    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"

    PERFORMANCE_RECALCULATED = "performance_recalculated"

    # Sign-out: drop the whole session cache
    SESSION_ENDED = "session_ended"


@dataclass(frozen=True)
class KeyBuilder:
    """Builds one cache key from the identifiers of a mutation."""
    entity: EntityType
    id_field: str  # "owner_id" or "student_id"

    def build(self, owner_id: Optional[str], student_id: Optional[str]) -> Optional[str]:
        identifier = owner_id if self.id_field == "owner_id" else student_id
        if not identifier:
            return None
        return make_key(self.entity, identifier)


_STUDENTS = KeyBuilder(EntityType.STUDENTS, "owner_id")
_ASSESSMENTS = KeyBuilder(EntityType.ASSESSMENTS, "owner_id")
_PERFORMANCE = KeyBuilder(EntityType.PERFORMANCE, "student_id")
_GOALS = KeyBuilder(EntityType.GOALS, "student_id")

_STUDENT_KEYS = (_STUDENTS, _PERFORMANCE, _GOALS)
_ASSESSMENT_KEYS = (_ASSESSMENTS,)
_RESPONSE_KEYS = (_PERFORMANCE,)
_GOAL_KEYS = (_GOALS,)

INVALIDATION_TABLE: Dict[MutationKind, Tuple[KeyBuilder, ...]] = {
    MutationKind.STUDENT_CREATED: _STUDENT_KEYS,
    MutationKind.STUDENT_UPDATED: _STUDENT_KEYS,
    MutationKind.STUDENT_DELETED: _STUDENT_KEYS,
    MutationKind.ASSESSMENT_CREATED: _ASSESSMENT_KEYS,
    MutationKind.ASSESSMENT_UPDATED: _ASSESSMENT_KEYS,
    MutationKind.ASSESSMENT_DELETED: _ASSESSMENT_KEYS,
    MutationKind.RESPONSE_CREATED: _RESPONSE_KEYS,
    MutationKind.RESPONSE_UPDATED: _RESPONSE_KEYS,
    MutationKind.RESPONSE_DELETED: _RESPONSE_KEYS,
    MutationKind.GOAL_CREATED: _GOAL_KEYS,
    MutationKind.GOAL_UPDATED: _GOAL_KEYS,
    MutationKind.GOAL_DELETED: _GOAL_KEYS,
    MutationKind.PERFORMANCE_RECALCULATED: (_PERFORMANCE,),
    MutationKind.SESSION_ENDED: (),
}


def keys_for(
    kind: MutationKind,
    owner_id: Optional[str] = None,
    student_id: Optional[str] = None,
) -> List[str]:
    """Cache keys purged by a mutation. Builders missing their id are skipped."""
    keys = []
    for builder in INVALIDATION_TABLE[kind]:
        key = builder.build(owner_id, student_id)
        if key is not None:
            keys.append(key)
    return keys


@dataclass
class InvalidationResult:
    """Result of a cache invalidation operation."""
    kind: MutationKind
    keys: List[str]
    keys_invalidated: int
    duration_ms: float
    cleared: bool = False


class CacheInvalidator:
    """
    Handles cache invalidation based on mutations.

    All operations are total and idempotent: invalidating keys that are
    not cached is a no-op.
    """

    def __init__(self, cache: CacheStore):
        self._cache = cache

    def handle(
        self,
        kind: MutationKind,
        owner_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> InvalidationResult:
        """Purge the keys mapped to ``kind`` in INVALIDATION_TABLE."""
        start_time = time.perf_counter()

        if kind == MutationKind.SESSION_ENDED:
            keys = []
            invalidated = len(self._cache)
            self._cache.clear()
        else:
            keys = keys_for(kind, owner_id=owner_id, student_id=student_id)
            invalidated = sum(1 for key in keys if self._cache.invalidate(key))

        duration = (time.perf_counter() - start_time) * 1000

        logger.info(
            f"Cache invalidation: {kind.value}, owner={owner_id}, "
            f"student={student_id}, {invalidated}/{len(keys)} keys"
        )

        return InvalidationResult(
            kind=kind,
            keys=keys,
            keys_invalidated=invalidated,
            duration_ms=duration,
            cleared=kind == MutationKind.SESSION_ENDED,
        )

    # =========================================================================
    # Named dispatcher operations
    # =========================================================================

    def invalidate_student_data(self, owner_id: str, student_id: Optional[str] = None) -> InvalidationResult:
        return self.handle(MutationKind.STUDENT_UPDATED, owner_id=owner_id, student_id=student_id)

    def invalidate_assessment_data(self, owner_id: str) -> InvalidationResult:
        return self.handle(MutationKind.ASSESSMENT_UPDATED, owner_id=owner_id)

    def invalidate_goal_data(self, student_id: str) -> InvalidationResult:
        return self.handle(MutationKind.GOAL_UPDATED, student_id=student_id)

    # =========================================================================
    # Mutation wrappers
    # =========================================================================

    async def run_mutation(
        self,
        kind: MutationKind,
        operation: Callable[[], Awaitable[Any]],
        owner_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> Any:
        """
        Run a mutation against the store, then invalidate its keys.

        Invalidation runs even when the mutation fails: a partial write
        may still have reached the store. The error is re-raised.
        """
        try:
            return await operation()
        finally:
            self.handle(kind, owner_id=owner_id, student_id=student_id)

    def invalidates(self, kind: MutationKind):
        """
        Decorator for async mutation functions.

        The wrapped function must receive ``owner_id`` and/or ``student_id``
        as keyword arguments.

        Usage:
            @invalidator.invalidates(MutationKind.GOAL_CREATED)
            async def create_goal(payload, *, student_id): ...
        """
        def decorator(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                return await self.run_mutation(
                    kind,
                    lambda: func(*args, **kwargs),
                    owner_id=kwargs.get("owner_id"),
                    student_id=kwargs.get("student_id"),
                )
            return wrapper
        return decorator
