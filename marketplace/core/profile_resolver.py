"""Answers "does this user have a complete profile?".

"No row" comes back from the Data Service as an explicit ``None`` and means
the user still needs setup. Every other Data Service failure is a
``ResolverError``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from marketplace.core.contracts import DataService
from marketplace.core.exceptions import DataServiceError, ResolverError
from marketplace.modules.profiles.schemas import Profile

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
CREATORS_TABLE = "creators"
BUSINESSES_TABLE = "businesses"


@dataclass(frozen=True)
class ProfileResolution:
    complete: bool
    profile: Optional[Profile] = None


class ProfileResolver:
    def __init__(self, data: DataService):
        self.data = data

    async def resolve_profile(self, user_id: str) -> ProfileResolution:
        try:
            row = await self.data.find_one(PROFILES_TABLE, {"id": user_id})
        except DataServiceError as e:
            logger.error(f"Profile lookup failed for user {user_id}: {e.message}")
            raise ResolverError(f"Could not load your profile: {e.message}", details=e.details)
        if row is None:
            return ProfileResolution(complete=False)
        profile = Profile(**row)
        return ProfileResolution(complete=profile.is_complete, profile=profile)

    async def is_username_available(self, candidate: str) -> bool:
        """Exact, case-sensitive match against every profile."""
        try:
            row = await self.data.find_one(PROFILES_TABLE, {"username": candidate})
        except DataServiceError as e:
            raise ResolverError(f"Could not check username availability: {e.message}", details=e.details)
        return row is None

    async def fetch_listings(self, user_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Load optional creator and business listings; a failed lookup yields None."""
        creator = await self._fetch_optional(CREATORS_TABLE, user_id)
        business = await self._fetch_optional(BUSINESSES_TABLE, user_id)
        return creator, business

    async def _fetch_optional(self, table: str, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.data.find_one(table, {"id": user_id})
        except DataServiceError as e:
            logger.warning(f"Could not load {table} listing for user {user_id}: {e.message}")
            return None
