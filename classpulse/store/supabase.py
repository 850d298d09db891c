"""
Supabase Data Store

Async PostgREST client for the hosted Supabase project:
- Connection pooling via a shared httpx.AsyncClient
- Owner filters and canonical ordering from ENTITY_QUERIES
- Idempotent upserts (merge-duplicates on the conflict column)
- Errors surface as StoreError; no internal retry, callers own that policy
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from classpulse.cache.keys import EntityType
from classpulse.store.base import DataStore
from classpulse.store.exceptions import RecordNotFoundError, StoreError
from classpulse.store.queries import QuerySpec, get_query_spec
from classpulse.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


class SupabaseStore(DataStore):
    """
    Data store backed by Supabase's REST API.

    Usage:
        async with SupabaseStore(url, anon_key, access_token=jwt) as store:
            students = await store.fetch_collection(EntityType.STUDENTS, teacher_id)
    """

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        max_connections: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Supabase store.

        Args:
            url: Project URL (https://<ref>.supabase.co)
            api_key: Project anon or service key
            access_token: Signed-in user's JWT (row level security); defaults to api_key
            timeout: Request timeout in seconds
            max_connections: Maximum concurrent connections
            transport: Custom httpx transport (tests)
        """
        if not url or not api_key:
            raise ValueError("Supabase URL and API key are required")

        self._client = httpx.AsyncClient(
            base_url=url.rstrip("/") + self.REST_PATH,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Content-Type": "application/json",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, access_token: Optional[str] = None) -> "SupabaseStore":
        settings = settings or get_settings()
        return cls(
            url=settings.SUPABASE_URL,
            api_key=settings.SUPABASE_ANON_KEY,
            access_token=access_token,
            timeout=settings.REQUEST_TIMEOUT,
        )

    # =========================================================================
    # DataStore
    # =========================================================================

    async def fetch_collection(self, entity: EntityType, owner_id: str) -> List[Dict[str, Any]]:
        spec = get_query_spec(entity)
        rows = await self._select(entity, spec, owner_id, limit=spec.limit)
        logger.debug(f"Fetched {len(rows)} {spec.table} rows for {owner_id}")
        return rows

    async def fetch_singleton(self, entity: EntityType, identifier: str) -> Dict[str, Any]:
        spec = get_query_spec(entity)
        rows = await self._select(entity, spec, identifier, limit=1)
        if not rows:
            raise RecordNotFoundError(
                f"No {spec.table} row for {spec.filter_column}={identifier}",
                entity=entity.value,
                status_code=404,
            )
        return rows[0]

    async def upsert(self, entity: EntityType, key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        spec = get_query_spec(entity)
        payload = {**record, spec.conflict_column: key}

        rows = await self._request(
            entity,
            "POST",
            f"/{spec.table}",
            params={"on_conflict": spec.conflict_column},
            json=payload,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        logger.debug(f"Upserted {spec.table} row {spec.conflict_column}={key}")
        return rows[0] if rows else payload

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    # =========================================================================
    # HTTP helpers
    # =========================================================================

    async def _select(
        self,
        entity: EntityType,
        spec: QuerySpec,
        value: str,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            "select": spec.select_clause,
            spec.filter_column: f"eq.{value}",
        }
        if spec.order_by:
            direction = "desc" if spec.descending else "asc"
            params["order"] = f"{spec.order_by}.{direction}"
        if limit:
            params["limit"] = str(limit)

        return await self._request(entity, "GET", f"/{spec.table}", params=params)

    async def _request(
        self,
        entity: EntityType,
        method: str,
        url: str,
        **kwargs,
    ) -> List[Dict[str, Any]]:
        if self._closed:
            raise StoreError("Store is closed", entity=entity.value)

        logger.debug(f"{method} {url}")

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise StoreError(f"Request timed out: {e}", entity=entity.value) from e
        except httpx.HTTPError as e:
            raise StoreError(f"HTTP error: {e}", entity=entity.value) from e

        if response.status_code >= 400:
            body = _safe_json(response)
            message = body.get("message") if isinstance(body, dict) else None
            raise StoreError(
                f"Supabase request failed: {response.status_code} {message or ''}".strip(),
                entity=entity.value,
                status_code=response.status_code,
                response=body,
            )

        data = _safe_json(response)
        if data is None:
            return []
        return data if isinstance(data, list) else [data]


def _safe_json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
