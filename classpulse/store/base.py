"""
Data Store Interface

The authoritative data lives in an external store. The cache and the
performance sync only need three operations from it, so backends
implement exactly these.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from classpulse.cache.keys import EntityType


class DataStore(ABC):
    """Async interface to the authoritative data store."""

    @abstractmethod
    async def fetch_collection(self, entity: EntityType, owner_id: str) -> List[Dict[str, Any]]:
        """
        Fetch rows of a collection scoped to an owner, in canonical order.

        Raises:
            StoreError: On any failure
        """

    @abstractmethod
    async def fetch_singleton(self, entity: EntityType, identifier: str) -> Dict[str, Any]:
        """
        Fetch a single row.

        Raises:
            RecordNotFoundError: If no row matches
            StoreError: On any other failure
        """

    @abstractmethod
    async def upsert(self, entity: EntityType, key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert or update a row by its key. Safe to repeat with identical input.

        Raises:
            StoreError: On any failure
        """

    async def close(self):
        """Release connections held by the backend."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
