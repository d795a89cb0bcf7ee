"""Contracts for the hosted services the marketplace delegates to.

The Supabase adapters in ``marketplace.database`` and
``marketplace.modules.auth.identity`` implement these; tests use in-memory
fakes with the same shape.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field


class Session(BaseModel):
    """Authenticated user identity as cached by the application."""

    user_id: str
    email: Optional[str] = None
    raw_metadata: Dict[str, Any] = Field(default_factory=dict)
    access_token: Optional[str] = Field(default=None, exclude=True)
    refresh_token: Optional[str] = Field(default=None, exclude=True)
    expires_at: Optional[int] = None

    class Config:
        frozen = True


class SessionEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    MFA_CHALLENGE_VERIFIED = "MFA_CHALLENGE_VERIFIED"

    @classmethod
    def parse(cls, value: Any) -> Optional["SessionEvent"]:
        try:
            return cls(getattr(value, "value", value))
        except ValueError:
            return None


@dataclass(frozen=True)
class SessionChange:
    event: SessionEvent
    session: Optional[Session]


@dataclass(frozen=True)
class SignUpResult:
    user_id: str
    email: str
    session: Optional[Session] = None

    @property
    def needs_confirmation(self) -> bool:
        return self.session is None


class Unsubscribable(Protocol):
    def unsubscribe(self) -> None: ...


AuthStateCallback = Callable[[SessionEvent, Optional[Session]], None]


class IdentityService(Protocol):
    async def get_session(self) -> Optional[Session]: ...

    async def sign_in_with_password(self, email: str, password: str) -> Session: ...

    async def sign_up(
        self, email: str, password: str, metadata: Dict[str, Any], redirect_url: str
    ) -> SignUpResult: ...

    async def sign_in_with_oauth(self, provider: str, redirect_url: str) -> str: ...

    async def exchange_code_for_session(self, code: str) -> Session: ...

    async def set_session(self, access_token: str, refresh_token: str) -> Session: ...

    async def verify_email_token(self, token_hash: str, token_type: str) -> Optional[Session]: ...

    async def sign_out(self) -> None: ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> Unsubscribable: ...

    async def update_user_metadata(self, patch: Dict[str, Any]) -> Dict[str, Any]: ...


class DataService(Protocol):
    async def find_one(self, table: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    async def find_many(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 20,
        offset: int = 0,
        order_by: Optional[str] = None,
        desc: bool = True,
    ) -> List[Dict[str, Any]]: ...

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update(
        self, table: str, filters: Dict[str, Any], patch: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]: ...

    async def delete(self, table: str, filters: Dict[str, Any]) -> bool: ...


class BlobStorage(Protocol):
    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str: ...
