"""
Data Store Layer

The authoritative store behind the cache:
- DataStore: async interface (fetch collection, fetch singleton, upsert)
- SupabaseStore: hosted PostgREST backend (httpx)
- SqlStore: SQLAlchemy backend for local development and tests
"""

from .base import DataStore
from .exceptions import RecordNotFoundError, StoreError
from .queries import ENTITY_QUERIES, QuerySpec, get_query_spec
from .sql import SqlStore, create_session_factory
from .supabase import SupabaseStore

__all__ = [
    "DataStore",
    "StoreError",
    "RecordNotFoundError",
    "ENTITY_QUERIES",
    "QuerySpec",
    "get_query_spec",
    "SqlStore",
    "create_session_factory",
    "SupabaseStore",
]
