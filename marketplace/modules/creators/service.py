from typing import List

from marketplace.core.listing_service import ListingService
from marketplace.core.profile_resolver import CREATORS_TABLE
from marketplace.modules.creators.schemas import CreatorCreate, CreatorResponse, CreatorUpdate


class CreatorService(ListingService):
    table = CREATORS_TABLE
    resource = "creator profile"
    edit_path = "/account/creator"

    async def get_creator(self, user_id: str) -> CreatorResponse:
        return CreatorResponse(**await self.require(user_id))

    async def create_creator(self, user_id: str, creator_data: CreatorCreate) -> CreatorResponse:
        return CreatorResponse(**await self.create(user_id, creator_data.model_dump()))

    async def update_creator(self, user_id: str, creator_data: CreatorUpdate) -> CreatorResponse:
        # Only fields present in the request are written.
        fields = creator_data.model_dump(exclude_unset=True)
        return CreatorResponse(**await self.update(user_id, fields))

    async def list_creators(self, limit: int = 20, offset: int = 0) -> List[CreatorResponse]:
        return [CreatorResponse(**row) for row in await self.list(limit, offset)]
