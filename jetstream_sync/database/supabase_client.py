from supabase import acreate_client, AsyncClient
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import logging

from jetstream_sync.services.exceptions import (
    FallbackChainExhausted,
    PersistenceError,
    RecordFetchError,
)
from jetstream_sync.services.fallback_chain import NamedStrategy, run_fallback_chain

logger = logging.getLogger(__name__)


class SupabaseStore:
    """
    Async access to the JetStream domain tables.

    Only generic primitives live here (select, fetch, update, rpc); record type
    knowledge stays in the type handlers. Read errors propagate so callers can
    fall back to a degraded strategy.
    """

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None,
                 client: Optional[AsyncClient] = None):
        self.url = url
        self.key = key
        self.client: Optional[AsyncClient] = client

    async def _get_client(self) -> AsyncClient:
        if self.client is None:
            if not self.url or not self.key:
                raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables")
            self.client = await acreate_client(self.url, self.key)
            logger.info("Connected to Supabase")
        return self.client

    async def call_rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a database function and return its data"""
        client = await self._get_client()
        response = await client.rpc(function_name, params or {}).execute()
        return response.data

    async def select_missing_embedding(self, table: str, key_column: str, limit: int) -> List[str]:
        """Keys of rows whose embedding column is null"""
        client = await self._get_client()
        response = await client.table(table).select(key_column).is_("embedding", "null").limit(limit).execute()
        return [str(row[key_column]) for row in (response.data or []) if row.get(key_column) is not None]

    async def select_keys(self, table: str, key_column: str, limit: int, offset: int = 0) -> List[str]:
        """One page of keys ordered by key, regardless of embedding state"""
        client = await self._get_client()
        response = await (client.table(table).select(key_column).order(key_column)
                          .range(offset, offset + limit - 1).execute())
        return [str(row[key_column]) for row in (response.data or []) if row.get(key_column) is not None]

    async def fetch_one(self, table: str, key_column: str, key: str, columns: str = "*") -> Dict[str, Any]:
        """
        Fetch a single row by key

        Raises:
            RecordFetchError: if the row is missing or the query fails
        """
        try:
            client = await self._get_client()
            response = await client.table(table).select(columns).eq(key_column, key).limit(1).execute()
        except Exception as e:
            raise RecordFetchError(table, key, str(e)) from e

        if not response.data:
            raise RecordFetchError(table, key)
        return response.data[0]

    async def fetch_optional(self, table: str, column: str, value: Any,
                             columns: str = "*") -> Optional[Dict[str, Any]]:
        """First row matching column = value, or None. Query errors propagate."""
        if value is None:
            return None
        client = await self._get_client()
        response = await client.table(table).select(columns).eq(column, value).limit(1).execute()
        return response.data[0] if response.data else None

    async def fetch_many(self, table: str, column: str, value: Any,
                         columns: str = "*", order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        client = await self._get_client()
        query = client.table(table).select(columns).eq(column, value)
        if order_by:
            query = query.order(order_by)
        response = await query.execute()
        return response.data or []

    async def update_row(self, table: str, key_column: str, key: str, values: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.table(table).update(values).eq(key_column, key).execute()
        if not response.data:
            raise PersistenceError(f"No {table} row updated for {key_column}={key}")
        return response.data[0]

    async def update_embedding(self, table: str, key_column: str, key: str, vector: List[float]) -> str:
        """
        Write a vector onto its domain row.

        The embedded-at timestamp is written when the table has that column;
        otherwise the write is retried with the vector alone.

        Returns:
            Name of the write strategy that succeeded
        """
        async def with_timestamp():
            return await self.update_row(table, key_column, key, {
                "embedding": vector,
                "embedding_updated_at": datetime.now(timezone.utc).isoformat(),
            })

        async def without_timestamp():
            return await self.update_row(table, key_column, key, {"embedding": vector})

        try:
            outcome = await run_fallback_chain([
                NamedStrategy("with_timestamp", with_timestamp),
                NamedStrategy("embedding_only", without_timestamp),
            ], label=f"update_embedding {table} {key}")
        except FallbackChainExhausted as e:
            raise PersistenceError(str(e)) from e

        return outcome.strategy

    async def archive_old_offers(self, days_threshold: int = 90) -> int:
        """Archive stale JetShare offers; returns the number archived"""
        data = await self.call_rpc("archive_old_jetshare_offers", {"days_threshold": days_threshold})
        if isinstance(data, bool):
            return 0
        if isinstance(data, int):
            return data
        if isinstance(data, list):
            if len(data) == 1 and isinstance(data[0], int):
                return data[0]
            return len(data)
        return 0
