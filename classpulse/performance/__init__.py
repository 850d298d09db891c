"""
Student Performance

Aggregation of raw assessment responses into per-student summaries,
and the sync that writes those summaries back to the data store.
"""

from .bands import (
    PerformanceLevel,
    HIGH_THRESHOLD,
    MEDIUM_THRESHOLD,
    performance_level_for,
    badge_variant_for,
)
from .models import ResponseRecord, PerformanceRecord
from .aggregator import (
    AggregationResult,
    aggregate,
    aggregate_detailed,
    aggregate_by_student,
    AVERAGE_PRECISION,
    ATTENTION_AVERAGE_THRESHOLD,
    RECENT_SCORE_THRESHOLD,
    DECLINING_TREND_WINDOW,
)
from .sync import PerformanceSync, SyncReport

__all__ = [
    # Bands
    "PerformanceLevel",
    "HIGH_THRESHOLD",
    "MEDIUM_THRESHOLD",
    "performance_level_for",
    "badge_variant_for",
    # Models
    "ResponseRecord",
    "PerformanceRecord",
    # Aggregation
    "AggregationResult",
    "aggregate",
    "aggregate_detailed",
    "aggregate_by_student",
    "AVERAGE_PRECISION",
    "ATTENTION_AVERAGE_THRESHOLD",
    "RECENT_SCORE_THRESHOLD",
    "DECLINING_TREND_WINDOW",
    # Sync
    "PerformanceSync",
    "SyncReport",
]
