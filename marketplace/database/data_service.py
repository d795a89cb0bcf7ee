import logging
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from marketplace.core.exceptions import DataServiceError

logger = logging.getLogger(__name__)


class SupabaseDataService:
    """Record store over PostgREST. "No rows" is ``None``, never an error."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def find_one(self, table: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = self.client.table(table).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        result = await self._execute(table, query.limit(1))
        return result.data[0] if result.data else None

    async def find_many(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 20,
        offset: int = 0,
        order_by: Optional[str] = None,
        desc: bool = True,
    ) -> List[Dict[str, Any]]:
        query = self.client.table(table).select("*")
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=desc)
        result = await self._execute(table, query.limit(limit).offset(offset))
        return result.data or []

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._execute(table, self.client.table(table).insert(record))
        if not result.data:
            raise DataServiceError(f"Failed to create {table} record", table=table)
        return result.data[0]

    async def update(self, table: str, filters: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        query = self.client.table(table).update(patch)
        for column, value in filters.items():
            query = query.eq(column, value)
        result = await self._execute(table, query)
        return result.data[0] if result.data else None

    async def delete(self, table: str, filters: Dict[str, Any]) -> bool:
        query = self.client.table(table).delete()
        for column, value in filters.items():
            query = query.eq(column, value)
        result = await self._execute(table, query)
        return len(result.data or []) > 0

    async def _execute(self, table: str, query):
        try:
            return await query.execute()
        except APIError as e:
            logger.error(f"PostgREST error on {table}: [{e.code}] {e.message}")
            raise DataServiceError(e.message or "Database request failed", table=table, provider_code=e.code)
        except httpx.HTTPError as e:
            logger.error(f"Network error on {table}: {e}")
            raise DataServiceError(f"Could not reach the database: {e}", table=table)
