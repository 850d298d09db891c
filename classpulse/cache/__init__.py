"""
ClassPulse Caching Layer

Session-scoped cache in front of the hosted data store:
- Layer 1: CacheStore (in-memory, per-entry TTL, lazy expiry)
- Layer 2: QueryGateway (read-through fetches, see classpulse.queries)
- Layer 3: Data store (source of truth)

Key components:
- CacheStore: TTL key/value table with statistics
- CacheInvalidator: Mutation-driven invalidation from one central table
- CacheMonitor: Hit-rate and size health checks
- CacheSweeper: Optional background purge of expired entries

Usage:
    cache = CacheStore()
    invalidator = CacheInvalidator(cache)

    # After saving a response
    invalidator.handle(MutationKind.RESPONSE_CREATED, student_id=student_id)
"""

from classpulse.cache.config import CacheConfig, CacheTTL, get_cache_config
from classpulse.cache.keys import (
    EntityType,
    make_key,
    students_key,
    assessments_key,
    performance_key,
    goals_key,
)
from classpulse.cache.store import CacheStore, CacheEntry, CacheStats
from classpulse.cache.invalidation import (
    CacheInvalidator,
    InvalidationResult,
    MutationKind,
    INVALIDATION_TABLE,
    keys_for,
)
from classpulse.cache.monitoring import CacheMonitor, HealthCheckResult, HealthStatus
from classpulse.cache.sweeper import CacheSweeper

__all__ = [
    # Config
    "CacheConfig",
    "CacheTTL",
    "get_cache_config",
    # Keys
    "EntityType",
    "make_key",
    "students_key",
    "assessments_key",
    "performance_key",
    "goals_key",
    # Store
    "CacheStore",
    "CacheEntry",
    "CacheStats",
    # Invalidation
    "CacheInvalidator",
    "InvalidationResult",
    "MutationKind",
    "INVALIDATION_TABLE",
    "keys_for",
    # Monitoring
    "CacheMonitor",
    "HealthCheckResult",
    "HealthStatus",
    # Sweeping
    "CacheSweeper",
]
