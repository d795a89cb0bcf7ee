from pydantic import BaseModel, EmailStr, field_validator
from typing import Any, Dict, Optional

from marketplace.modules.profiles.schemas import UsernameForm

PASSWORD_MIN_LENGTH = 8


class SignInRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class SignUpForm(UsernameForm):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        return v


class CompleteProfileForm(UsernameForm):
    pass


class ScreenAction(BaseModel):
    label: str
    href: str


class ScreenResponse(BaseModel):
    """A page as the client renders it"""
    screen: str
    error: Optional[str] = None
    notice: Optional[str] = None
    action: Optional[ScreenAction] = None
    data: Dict[str, Any] = {}
