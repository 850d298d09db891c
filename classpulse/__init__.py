"""
ClassPulse

Client-side caching and performance aggregation for the teacher dashboard:
- cache: TTL cache store, mutation-driven invalidation, monitoring
- queries: read-through gateway over the data store
- performance: response aggregation and performance sync
- store: Supabase and SQL data store backends
"""

__version__ = "1.0.0"
