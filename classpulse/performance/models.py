"""
Performance Models

ResponseRecord is one raw scored response (aggregation input).
PerformanceRecord is the derived per-student summary (aggregation output).
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classpulse.performance.bands import PerformanceLevel


def _to_date(value: Any) -> Any:
    """Accept dates, datetimes and ISO date/datetime strings."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


def _embedded(row: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Embedded resource from a Supabase select (object or one-item list)."""
    value = row.get(name) or {}
    if isinstance(value, list):
        value = value[0] if value else {}
    return value


class ResponseRecord(BaseModel):
    """A student's scored response to one assessment item."""
    student_id: str
    score: Optional[float] = None
    max_score: Optional[float] = None
    assessment_date: Optional[date] = None
    assessment_id: Optional[str] = None
    assessment_item_id: Optional[str] = None
    response_id: Optional[str] = None

    @field_validator("assessment_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        return _to_date(value)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ResponseRecord":
        """
        Build from a student_responses row.

        max_score comes from the joined assessment item (per-item maximum),
        the date from the joined assessment, falling back to the response's
        own created_at.
        """
        item = _embedded(row, "assessment_items")
        assessment = _embedded(row, "assessments")

        max_score = item.get("max_score", row.get("max_score"))
        assessment_date = (
            assessment.get("assessment_date")
            or row.get("assessment_date")
            or row.get("created_at")
        )

        return cls(
            student_id=str(row["student_id"]),
            score=row.get("score"),
            max_score=max_score,
            assessment_date=assessment_date,
            assessment_id=row.get("assessment_id"),
            assessment_item_id=row.get("assessment_item_id"),
            response_id=row.get("id"),
        )


class PerformanceRecord(BaseModel):
    """Derived performance summary for one student."""

    model_config = ConfigDict(frozen=True)

    student_id: Optional[str] = None
    assessment_count: int = Field(0, ge=0)
    average_score: Optional[float] = None
    performance_level: Optional[PerformanceLevel] = None
    needs_attention: bool = False
    last_assessment_date: Optional[date] = None

    @field_validator("last_assessment_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        return _to_date(value)

    @classmethod
    def empty(cls, student_id: Optional[str] = None) -> "PerformanceRecord":
        """The record of a student with no assessed responses."""
        return cls(
            student_id=student_id,
            assessment_count=0,
            average_score=None,
            performance_level=None,
            needs_attention=False,
            last_assessment_date=None,
        )

    @property
    def is_empty(self) -> bool:
        return self.assessment_count == 0

    def to_row(self) -> Dict[str, Any]:
        """Serialize for the student_performance table."""
        return self.model_dump(mode="json")
