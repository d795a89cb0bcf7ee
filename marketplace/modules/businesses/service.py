from typing import List, Optional

from marketplace.core.exceptions import ValidationError
from marketplace.core.listing_service import ListingService
from marketplace.core.profile_resolver import BUSINESSES_TABLE
from marketplace.modules.businesses.schemas import BusinessCreate, BusinessResponse, BusinessUpdate


class BusinessService(ListingService):
    table = BUSINESSES_TABLE
    resource = "business profile"
    edit_path = "/account/business"

    async def get_business(self, user_id: str) -> BusinessResponse:
        return BusinessResponse(**await self.require(user_id))

    async def create_business(
        self,
        user_id: str,
        business_data: BusinessCreate,
        default_email: Optional[str] = None,
    ) -> BusinessResponse:
        fields = business_data.model_dump()
        fields["email"] = fields.get("email") or default_email
        if not fields["email"]:
            raise ValidationError("Invalid email format", fields={"email": ["Invalid email format"]})
        return BusinessResponse(**await self.create(user_id, fields))

    async def update_business(self, user_id: str, business_data: BusinessUpdate) -> BusinessResponse:
        fields = business_data.model_dump(exclude_unset=True)
        if "email" in fields and not fields["email"]:
            del fields["email"]
        return BusinessResponse(**await self.update(user_id, fields))

    async def list_businesses(self, limit: int = 20, offset: int = 0) -> List[BusinessResponse]:
        return [BusinessResponse(**row) for row in await self.list(limit, offset)]
