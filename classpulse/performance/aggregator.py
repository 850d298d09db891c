"""
Performance Aggregator

Pure fold of a student's raw responses into a PerformanceRecord.

Rules:
- Each response is normalized to score / max_score, clamped to [0, 1],
  always from its own max_score (never a previously stored percentage)
- Malformed responses (max_score <= 0, missing or non-finite score, missing
  date, another student's row) are excluded and logged, never raised
- Duplicates of the same assessment item count once; the latest wins
- average_score is the mean percentage rounded half-up to one decimal
- needs_attention combines three signals, see ATTENTION_* constants
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from classpulse.performance.bands import MEDIUM_THRESHOLD, performance_level_for
from classpulse.performance.models import PerformanceRecord, ResponseRecord

logger = logging.getLogger(__name__)


# Averages are reported to one decimal, rounding halves up
AVERAGE_PRECISION = Decimal("0.1")

# Chronic signal: average below the bottom of the Medium band
ATTENTION_AVERAGE_THRESHOLD = MEDIUM_THRESHOLD

# Recent-drop signal: latest response below this percentage
RECENT_SCORE_THRESHOLD = 50.0

# Trend signal: the last N responses strictly declining
DECLINING_TREND_WINDOW = 3

_HUNDRED = Decimal(100)
_ONE = Decimal(1)
_ZERO = Decimal(0)


@dataclass
class AggregationResult:
    """Aggregated record plus bookkeeping about the input."""
    record: PerformanceRecord
    excluded: int = 0
    duplicates: int = 0
    attention_reasons: List[str] = field(default_factory=list)


def aggregate(
    responses: Iterable[ResponseRecord],
    student_id: Optional[str] = None,
) -> PerformanceRecord:
    """Aggregate one student's responses into a PerformanceRecord."""
    return aggregate_detailed(responses, student_id=student_id).record


def aggregate_by_student(responses: Iterable[ResponseRecord]) -> Dict[str, PerformanceRecord]:
    """Group a mixed collection by student and aggregate each group."""
    groups: Dict[str, List[ResponseRecord]] = OrderedDict()
    for response in responses:
        groups.setdefault(response.student_id, []).append(response)
    return {
        student_id: aggregate(group, student_id=student_id)
        for student_id, group in groups.items()
    }


def aggregate_detailed(
    responses: Iterable[ResponseRecord],
    student_id: Optional[str] = None,
) -> AggregationResult:
    responses = list(responses)

    if student_id is None and responses:
        student_id = responses[0].student_id

    if not responses:
        return AggregationResult(record=PerformanceRecord.empty(student_id))

    valid: List[Tuple[int, ResponseRecord]] = []
    excluded = 0
    for position, response in enumerate(responses):
        reason = _exclusion_reason(response, student_id)
        if reason:
            excluded += 1
            logger.warning(
                f"Excluding response {response.response_id or position} "
                f"for student {student_id}: {reason}"
            )
            continue
        valid.append((position, response))

    unique, duplicates = _dedupe(valid)

    if not unique:
        return AggregationResult(
            record=PerformanceRecord.empty(student_id),
            excluded=excluded,
            duplicates=duplicates,
        )

    # Chronological; input position breaks ties between same-day responses
    ordered = sorted(unique, key=lambda item: (item[1].assessment_date, item[0]))
    percentages = [_percentage(response) for _, response in ordered]

    mean = sum(percentages, _ZERO) / len(percentages)
    average_score = float(mean.quantize(AVERAGE_PRECISION, rounding=ROUND_HALF_UP))

    reasons = _attention_reasons(average_score, percentages)

    record = PerformanceRecord(
        student_id=student_id,
        assessment_count=len(ordered),
        average_score=average_score,
        performance_level=performance_level_for(average_score),
        needs_attention=bool(reasons),
        last_assessment_date=max(response.assessment_date for _, response in ordered),
    )

    return AggregationResult(
        record=record,
        excluded=excluded,
        duplicates=duplicates,
        attention_reasons=reasons,
    )


# =============================================================================
# Helpers
# =============================================================================

def _exclusion_reason(response: ResponseRecord, student_id: Optional[str]) -> Optional[str]:
    if student_id is not None and response.student_id != student_id:
        return f"belongs to student {response.student_id}"
    if response.max_score is None or response.max_score <= 0:
        return f"invalid max_score {response.max_score}"
    if not math.isfinite(response.max_score):
        return f"non-finite max_score {response.max_score}"
    if response.score is None:
        return "missing score"
    if not math.isfinite(response.score):
        return f"non-finite score {response.score}"
    if response.score < 0:
        return f"negative score {response.score}"
    if response.assessment_date is None:
        return "missing assessment date"
    return None


def _natural_key(position: int, response: ResponseRecord) -> Hashable:
    """Finest-grained identity of a response."""
    if response.assessment_item_id:
        return ("item", response.assessment_id, response.assessment_item_id)
    if response.response_id:
        return ("response", response.response_id)
    return ("position", position)


def _dedupe(
    valid: List[Tuple[int, ResponseRecord]],
) -> Tuple[List[Tuple[int, ResponseRecord]], int]:
    """Keep the latest response per natural key (by date, then position)."""
    latest: Dict[Hashable, Tuple[int, ResponseRecord]] = {}
    for position, response in valid:
        key = _natural_key(position, response)
        current = latest.get(key)
        if current is None or (response.assessment_date, position) >= (
            current[1].assessment_date, current[0]
        ):
            latest[key] = (position, response)
    return list(latest.values()), len(valid) - len(latest)


def _percentage(response: ResponseRecord) -> Decimal:
    ratio = Decimal(str(response.score)) / Decimal(str(response.max_score))
    return min(max(ratio, _ZERO), _ONE) * _HUNDRED


def _attention_reasons(average_score: float, percentages: List[Decimal]) -> List[str]:
    reasons = []

    if average_score < ATTENTION_AVERAGE_THRESHOLD:
        reasons.append("low_average")

    if percentages[-1] < Decimal(str(RECENT_SCORE_THRESHOLD)):
        reasons.append("recent_drop")

    if len(percentages) >= DECLINING_TREND_WINDOW:
        window = percentages[-DECLINING_TREND_WINDOW:]
        if all(earlier > later for earlier, later in zip(window, window[1:])):
            reasons.append("declining_trend")

    return reasons
