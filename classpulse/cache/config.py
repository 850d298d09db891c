"""
Cache Configuration

Centralized configuration for the client-side cache.
TTLs are chosen per entity: volatile data (per-student performance)
expires quickly, slower collections (assessment lists) live longer.
"""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CacheTTL:
    """
    Cache TTL configuration by entity type.

    Key insight: performance summaries change every time a response is
    saved, while assessment lists only change when a teacher edits them.
    One global TTL would either hammer the store or serve stale scores.
    """

    STUDENTS: timedelta = timedelta(minutes=2)
    ASSESSMENTS: timedelta = timedelta(minutes=3)
    PERFORMANCE: timedelta = timedelta(minutes=1)
    GOALS: timedelta = timedelta(minutes=2)

    # Used by CacheStore.set when no TTL is given
    DEFAULT: timedelta = timedelta(minutes=5)

    def for_entity(self, entity: str) -> timedelta:
        """Get TTL for an entity name (``EntityType`` value or member)."""
        name = getattr(entity, "value", entity)
        mapping = {
            "students": self.STUDENTS,
            "assessments": self.ASSESSMENTS,
            "performance": self.PERFORMANCE,
            "goals": self.GOALS,
        }
        return mapping.get(name, self.DEFAULT)


class CacheConfig(BaseSettings):
    """
    Main cache configuration.

    Settings can be overridden via environment variables:
    - CACHE_ENABLED: Enable/disable caching globally
    - CACHE_DEFAULT_TTL_SECONDS, CACHE_<ENTITY>_TTL_SECONDS: TTL overrides
    - CACHE_SWEEP_INTERVAL_SECONDS: Background sweep period (0 disables it)
    - CACHE_COALESCE_REQUESTS: Share in-flight fetches for the same key
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Global cache toggle
    enabled: bool = True

    # TTL overrides (seconds). None keeps the CacheTTL default.
    default_ttl_seconds: Optional[float] = Field(None, gt=0)
    students_ttl_seconds: Optional[float] = Field(None, gt=0)
    assessments_ttl_seconds: Optional[float] = Field(None, gt=0)
    performance_ttl_seconds: Optional[float] = Field(None, gt=0)
    goals_ttl_seconds: Optional[float] = Field(None, gt=0)

    # Lazy expiry is enough for a handful of keys; sweeping is opt-in
    sweep_interval_seconds: float = 0.0

    # Single-flight for concurrent misses on the same key
    coalesce_requests: bool = False

    # Monitoring thresholds
    min_hit_rate: float = 0.5
    min_samples: int = 20
    max_entries: int = 1000

    def ttls(self) -> CacheTTL:
        """Build the effective TTL table, applying any overrides."""
        defaults = CacheTTL()

        def pick(override: Optional[float], fallback: timedelta) -> timedelta:
            return timedelta(seconds=override) if override is not None else fallback

        return CacheTTL(
            STUDENTS=pick(self.students_ttl_seconds, defaults.STUDENTS),
            ASSESSMENTS=pick(self.assessments_ttl_seconds, defaults.ASSESSMENTS),
            PERFORMANCE=pick(self.performance_ttl_seconds, defaults.PERFORMANCE),
            GOALS=pick(self.goals_ttl_seconds, defaults.GOALS),
            DEFAULT=pick(self.default_ttl_seconds, defaults.DEFAULT),
        )


@lru_cache(maxsize=1)
def get_cache_config() -> CacheConfig:
    """Get singleton cache configuration."""
    return CacheConfig()
