from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime

USERNAME_MIN_LENGTH = 3


class Profile(BaseModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    profile_photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.username and self.username.strip())

    class Config:
        from_attributes = True


class UsernameForm(BaseModel):
    username: str

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        value = value.strip()
        if len(value) < USERNAME_MIN_LENGTH:
            raise ValueError(f"Username must be at least {USERNAME_MIN_LENGTH} characters")
        return value


class UsernameAvailability(BaseModel):
    username: str
    checked: bool
    available: Optional[bool] = None
    message: Optional[str] = None
