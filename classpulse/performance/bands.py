"""
Performance Bands

Fixed cut points for turning an average score (0-100) into a band.
Every component that bands a score (summary records, badges, colours)
goes through performance_level_for so the thresholds cannot drift apart.
"""

from enum import Enum
from typing import Optional


class PerformanceLevel(str, Enum):
    """Mastery band of a student's average score."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# Inclusive lower bounds
HIGH_THRESHOLD = 80.0
MEDIUM_THRESHOLD = 65.0

# Badge tokens used by the dashboard for each band
BADGE_VARIANTS = {
    PerformanceLevel.HIGH: "success",
    PerformanceLevel.MEDIUM: "warning",
    PerformanceLevel.LOW: "destructive",
}


def performance_level_for(score: Optional[float]) -> Optional[PerformanceLevel]:
    """
    Band an average score.

    >= 80 is High, >= 65 is Medium, anything lower is Low.
    None (no assessments) has no band.
    """
    if score is None:
        return None
    if score >= HIGH_THRESHOLD:
        return PerformanceLevel.HIGH
    if score >= MEDIUM_THRESHOLD:
        return PerformanceLevel.MEDIUM
    return PerformanceLevel.LOW


def badge_variant_for(level: Optional[PerformanceLevel]) -> str:
    """Badge token for a band; unbanded records get the neutral badge."""
    if level is None:
        return "secondary"
    return BADGE_VARIANTS[PerformanceLevel(level)]
