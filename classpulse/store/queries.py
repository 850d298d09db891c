"""
Entity Query Specifications

One QuerySpec per entity: which table to read, which column scopes it to
an owner (or identifies a singleton), and the canonical ordering callers
rely on. Both store backends read from this table so they agree on
filtering and order.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from classpulse.cache.keys import EntityType


@dataclass(frozen=True)
class QuerySpec:
    """How to fetch one entity collection or singleton."""
    table: str
    filter_column: str
    select: Tuple[str, ...] = ("*",)
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    singleton: bool = False
    # Primary/unique key used for upserts
    conflict_column: str = "id"

    @property
    def select_clause(self) -> str:
        return ",".join(self.select)


ENTITY_QUERIES: Dict[EntityType, QuerySpec] = {
    EntityType.STUDENTS: QuerySpec(
        table="students",
        filter_column="teacher_id",
        select=("id", "first_name", "last_name", "grade_level", "parent_email", "created_at"),
        order_by="last_name",
    ),
    EntityType.ASSESSMENTS: QuerySpec(
        table="assessments",
        filter_column="teacher_id",
        select=(
            "id", "title", "subject", "assessment_type",
            "assessment_date", "max_score", "created_at",
        ),
        order_by="assessment_date",
        descending=True,
        limit=50,
    ),
    EntityType.PERFORMANCE: QuerySpec(
        table="student_performance",
        filter_column="student_id",
        singleton=True,
        conflict_column="student_id",
    ),
    EntityType.GOALS: QuerySpec(
        table="goals",
        filter_column="student_id",
        select=(
            "id", "title", "description", "status",
            "progress_percentage", "target_date", "created_at",
        ),
        order_by="created_at",
        descending=True,
    ),
    EntityType.RESPONSES: QuerySpec(
        table="student_responses",
        filter_column="student_id",
        select=(
            "id", "student_id", "score", "assessment_id", "assessment_item_id", "created_at",
            "assessment_items!inner(max_score)",
            "assessments(assessment_date)",
        ),
        order_by="created_at",
    ),
}


def get_query_spec(entity: EntityType) -> QuerySpec:
    try:
        return ENTITY_QUERIES[entity]
    except KeyError:
        raise ValueError(f"No query defined for entity {entity.value}") from None
