import logging
import re
from datetime import datetime, timezone
from typing import Optional

from marketplace.core.contracts import DataService, Session
from marketplace.core.exceptions import DataServiceError, RecordNotFoundError, ValidationError
from marketplace.core.profile_resolver import PROFILES_TABLE, ProfileResolver
from marketplace.modules.profiles.schemas import USERNAME_MIN_LENGTH, Profile, UsernameAvailability

logger = logging.getLogger(__name__)

USERNAME_TAKEN = "Username is already taken"


def suggest_username(session: Session) -> str:
    """Username chosen at sign-up, else derived from the full name, else the email local part."""
    metadata = session.raw_metadata or {}
    if metadata.get("username"):
        return str(metadata["username"])
    full_name = metadata.get("full_name")
    if full_name:
        return re.sub(r"[^a-z0-9]", "", str(full_name).lower())
    if session.email:
        return session.email.split("@")[0]
    return ""


def default_photo_url(session: Session) -> Optional[str]:
    metadata = session.raw_metadata or {}
    return metadata.get("avatar_url") or metadata.get("profile_photo_url")


class ProfileService:
    def __init__(self, data: DataService):
        self.data = data

    async def create_profile(
        self,
        user_id: str,
        username: str,
        email: Optional[str],
        photo_url: Optional[str],
        existing: Optional[Profile] = None,
        screen: str = "complete-profile",
    ) -> Profile:
        """Insert the base profile, or fill in an existing incomplete row.

        A username claimed concurrently is reported on ``screen``.
        """
        record = {
            "username": username,
            "email": email,
            "profile_photo_url": photo_url,
        }
        try:
            if existing is not None:
                row = await self.data.update(PROFILES_TABLE, {"id": user_id}, record)
                if row is None:
                    raise RecordNotFoundError("profile")
            else:
                row = await self.data.insert(
                    PROFILES_TABLE,
                    {"id": user_id, **record, "created_at": datetime.now(timezone.utc).isoformat()},
                )
        except DataServiceError as e:
            if e.is_unique_violation:
                raise ValidationError(USERNAME_TAKEN, fields={"username": [USERNAME_TAKEN]}, screen=screen)
            raise
        logger.info(f"Profile created for user {user_id} ({username})")
        return Profile(**row)

    async def get_by_username(self, username: str) -> Profile:
        row = await self.data.find_one(PROFILES_TABLE, {"username": username})
        if row is None:
            raise RecordNotFoundError("profile")
        return Profile(**row)


async def check_availability(resolver: ProfileResolver, username: str) -> UsernameAvailability:
    candidate = username.strip()
    if len(candidate) < USERNAME_MIN_LENGTH:
        return UsernameAvailability(
            username=candidate,
            checked=False,
            message=f"Username must be at least {USERNAME_MIN_LENGTH} characters",
        )
    available = await resolver.is_username_available(candidate)
    return UsernameAvailability(
        username=candidate,
        checked=True,
        available=available,
        message="Username is available" if available else USERNAME_TAKEN,
    )
