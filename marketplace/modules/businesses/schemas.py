from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
from datetime import datetime

REQUIRED_FIELDS = {
    "name": "Name",
    "address": "Address",
    "description": "Description",
    "location": "Location",
}


def _required(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


def _instagram(value: str) -> str:
    value = _required(value, "Instagram URL")
    if "instagram.com" not in value:
        raise ValueError("Invalid Instagram URL")
    return value


class BusinessCreate(BaseModel):
    name: str
    address: str
    description: str
    # Defaults to the account email when omitted
    email: Optional[EmailStr] = None
    location: str
    instagram_url: str

    @field_validator("name", "address", "description", "location")
    @classmethod
    def check_required(cls, v: str, info) -> str:
        return _required(v, REQUIRED_FIELDS[info.field_name])

    @field_validator("instagram_url")
    @classmethod
    def check_instagram(cls, v: str) -> str:
        return _instagram(v)


class BusinessUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    email: Optional[EmailStr] = None
    location: Optional[str] = None
    instagram_url: Optional[str] = None

    @field_validator("name", "address", "description", "location")
    @classmethod
    def check_required(cls, v: Optional[str], info) -> Optional[str]:
        return v if v is None else _required(v, REQUIRED_FIELDS[info.field_name])

    @field_validator("instagram_url")
    @classmethod
    def check_instagram(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _instagram(v)


class BusinessResponse(BaseModel):
    id: str
    name: str
    address: str
    description: str
    email: str
    location: str
    instagram_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
