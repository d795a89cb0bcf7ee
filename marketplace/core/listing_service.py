"""Shared CRUD for the optional per-user listings (creators, businesses).

Listings are keyed by the owner's user id, so each user has at most one of
each kind.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from marketplace.core.contracts import DataService
from marketplace.core.exceptions import RecordExistsError, RecordNotFoundError

logger = logging.getLogger(__name__)


class ListingService:
    table: str = ""
    resource: str = ""
    edit_path: Optional[str] = None

    def __init__(self, data: DataService):
        self.data = data

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.data.find_one(self.table, {"id": user_id})

    async def require(self, user_id: str) -> Dict[str, Any]:
        row = await self.get(user_id)
        if row is None:
            raise RecordNotFoundError(self.resource)
        return row

    async def create(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        if await self.get(user_id) is not None:
            raise RecordExistsError(self.resource, self.edit_path)
        record = {"id": user_id, **fields, "created_at": datetime.now(timezone.utc).isoformat()}
        row = await self.data.insert(self.table, record)
        logger.info(f"Created {self.resource} for user {user_id}")
        return row

    async def update(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        patch = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        row = await self.data.update(self.table, {"id": user_id}, patch)
        if row is None:
            raise RecordNotFoundError(self.resource)
        logger.info(f"Updated {self.resource} for user {user_id}")
        return row

    async def delete(self, user_id: str) -> None:
        if not await self.data.delete(self.table, {"id": user_id}):
            raise RecordNotFoundError(self.resource)
        logger.info(f"Deleted {self.resource} for user {user_id}")

    async def list(self, limit: int = 20, offset: int = 0) -> List[Dict[str, Any]]:
        return await self.data.find_many(self.table, limit=limit, offset=offset, order_by="created_at", desc=True)
