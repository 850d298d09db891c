"""
Cache Keys

Every cached dataset is addressed by ``<entity>:<identifier>``.
Collections use the owner id (``students:<teacher_id>``), singletons the
entity id (``performance:<student_id>``). Two logically different datasets
must never share a key, so all keys are built here and nowhere else.
"""

from enum import Enum


class EntityType(Enum):
    """Entity collections known to the cache and the store."""

    STUDENTS = "students"
    ASSESSMENTS = "assessments"
    PERFORMANCE = "performance"
    GOALS = "goals"
    RESPONSES = "responses"


def make_key(entity: EntityType, identifier: str) -> str:
    """Create a cache key for an entity and owner/entity id."""
    identifier = str(identifier).strip() if identifier is not None else ""
    if not identifier:
        raise ValueError(f"Cache key for {entity.value} requires a non-empty identifier")
    return f"{entity.value}:{identifier}"


def students_key(owner_id: str) -> str:
    return make_key(EntityType.STUDENTS, owner_id)


def assessments_key(owner_id: str) -> str:
    return make_key(EntityType.ASSESSMENTS, owner_id)


def performance_key(student_id: str) -> str:
    return make_key(EntityType.PERFORMANCE, student_id)


def goals_key(student_id: str) -> str:
    return make_key(EntityType.GOALS, student_id)
