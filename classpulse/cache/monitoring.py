"""
Cache Monitoring

Health checks for the session cache.
Flags a low hit rate (TTLs too short or invalidation too broad) and
runaway key growth (keys built from unbounded identifiers).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from classpulse.cache.config import CacheConfig, get_cache_config
from classpulse.cache.store import CacheStore


logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheckResult:
    """Result of a health check."""
    status: HealthStatus
    checks: Dict[str, bool]
    issues: List[Dict[str, Any]]
    stats: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY


class CacheMonitor:
    """Monitors cache hit rate and size against configured thresholds."""

    def __init__(
        self,
        cache: CacheStore,
        config: Optional[CacheConfig] = None,
    ):
        self._cache = cache
        self._config = config or get_cache_config()

    def health_check(self) -> HealthCheckResult:
        stats = self._cache.get_stats()
        checks = {}
        issues = []

        # Check 1: Hit rate (only meaningful after enough lookups)
        lookups = self._cache.stats.lookups
        hit_rate = self._cache.stats.hit_rate
        checks["hit_rate"] = (
            lookups < self._config.min_samples or hit_rate >= self._config.min_hit_rate
        )
        if not checks["hit_rate"]:
            logger.warning(f"Low cache hit rate detected: {hit_rate:.1%} over {lookups} lookups")
            issues.append({
                "type": "hit_rate",
                "severity": "warning",
                "message": f"Hit rate {hit_rate:.1%} below {self._config.min_hit_rate:.0%}",
                "action": "Review per-entity TTLs and invalidation scope",
            })

        # Check 2: Entry count
        checks["entries"] = len(self._cache) <= self._config.max_entries
        if not checks["entries"]:
            logger.warning(f"Cache holds {len(self._cache)} entries")
            issues.append({
                "type": "entries",
                "severity": "warning",
                "message": f"{len(self._cache)} entries exceeds {self._config.max_entries}",
                "action": "Enable the background sweep or check key construction",
            })

        status = HealthStatus.HEALTHY if all(checks.values()) else HealthStatus.DEGRADED

        return HealthCheckResult(
            status=status,
            checks=checks,
            issues=issues,
            stats=stats,
        )
