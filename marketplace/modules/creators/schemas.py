from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime


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


def _tiktok(value: str) -> str:
    value = _required(value, "TikTok URL")
    if "tiktok.com" not in value:
        raise ValueError("Invalid TikTok URL")
    return value


def _youtube(value: Optional[str]) -> Optional[str]:
    if not value or not value.strip():
        return None
    value = value.strip()
    if "youtube.com" not in value and "youtu.be" not in value:
        raise ValueError("Invalid YouTube URL")
    return value


def _languages(value: List[str]) -> List[str]:
    cleaned = []
    for language in value:
        language = language.strip()
        if language and language not in cleaned:
            cleaned.append(language)
    if not cleaned:
        raise ValueError("At least one language is required")
    return cleaned


class CreatorCreate(BaseModel):
    name: Optional[str] = None
    description: str
    instagram_url: str
    tiktok_url: str
    youtube_url: Optional[str] = None
    location: str
    languages: List[str]

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        return _required(v, "Description")

    @field_validator("location")
    @classmethod
    def check_location(cls, v: str) -> str:
        return _required(v, "Location")

    @field_validator("instagram_url")
    @classmethod
    def check_instagram(cls, v: str) -> str:
        return _instagram(v)

    @field_validator("tiktok_url")
    @classmethod
    def check_tiktok(cls, v: str) -> str:
        return _tiktok(v)

    @field_validator("youtube_url")
    @classmethod
    def check_youtube(cls, v: Optional[str]) -> Optional[str]:
        return _youtube(v)

    @field_validator("languages")
    @classmethod
    def check_languages(cls, v: List[str]) -> List[str]:
        return _languages(v)


class CreatorUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    instagram_url: Optional[str] = None
    tiktok_url: Optional[str] = None
    youtube_url: Optional[str] = None
    location: Optional[str] = None
    languages: Optional[List[str]] = None

    @field_validator("description")
    @classmethod
    def check_description(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _required(v, "Description")

    @field_validator("location")
    @classmethod
    def check_location(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _required(v, "Location")

    @field_validator("instagram_url")
    @classmethod
    def check_instagram(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _instagram(v)

    @field_validator("tiktok_url")
    @classmethod
    def check_tiktok(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _tiktok(v)

    @field_validator("youtube_url")
    @classmethod
    def check_youtube(cls, v: Optional[str]) -> Optional[str]:
        return _youtube(v)

    @field_validator("languages")
    @classmethod
    def check_languages(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return v if v is None else _languages(v)


class CreatorResponse(BaseModel):
    id: str
    name: Optional[str] = None
    description: str
    instagram_url: Optional[str] = None
    tiktok_url: Optional[str] = None
    youtube_url: Optional[str] = None
    location: str
    languages: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
