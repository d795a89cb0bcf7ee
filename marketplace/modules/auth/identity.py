import logging
from typing import Any, Dict, Optional

import httpx
from supabase import AsyncClient
from supabase_auth.errors import AuthError as SupabaseAuthError

from marketplace.core.contracts import AuthStateCallback, Session, SignUpResult, Unsubscribable
from marketplace.core.exceptions import AuthError

logger = logging.getLogger(__name__)


def to_session(sb_session) -> Optional[Session]:
    """Convert a supabase_auth session into the application's Session."""
    if sb_session is None or sb_session.user is None:
        return None
    user = sb_session.user
    return Session(
        user_id=user.id,
        email=user.email,
        raw_metadata=dict(user.user_metadata or {}),
        access_token=sb_session.access_token,
        refresh_token=sb_session.refresh_token,
        expires_at=sb_session.expires_at,
    )


class SupabaseIdentityService:
    """Identity Service over Supabase Auth. Every failure becomes ``AuthError``."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def get_session(self) -> Optional[Session]:
        try:
            return to_session(await self.client.auth.get_session())
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Could not load your session", e)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        try:
            response = await self.client.auth.sign_in_with_password({"email": email, "password": password})
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Sign in failed", e)
        session = to_session(response.session)
        if session is None:
            raise AuthError("Sign in failed")
        return session

    async def sign_up(self, email: str, password: str, metadata: Dict[str, Any], redirect_url: str) -> SignUpResult:
        try:
            response = await self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"email_redirect_to": redirect_url, "data": metadata},
            })
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Sign up failed", e, screen="signup")
        if response.user is None:
            raise AuthError("User creation failed", screen="signup")
        return SignUpResult(
            user_id=response.user.id,
            email=response.user.email or email,
            session=to_session(response.session),
        )

    async def sign_in_with_oauth(self, provider: str, redirect_url: str) -> str:
        try:
            response = await self.client.auth.sign_in_with_oauth({
                "provider": provider,
                "options": {"redirect_to": redirect_url},
            })
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error(f"{provider.title()} sign in failed", e)
        return response.url

    async def exchange_code_for_session(self, code: str) -> Session:
        try:
            response = await self.client.auth.exchange_code_for_session({"auth_code": code})
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Could not complete sign in", e)
        session = to_session(response.session)
        if session is None:
            raise AuthError("Authentication failed - no session found")
        return session

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        try:
            response = await self.client.auth.set_session(access_token, refresh_token)
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Could not restore your session", e)
        session = to_session(response.session)
        if session is None:
            raise AuthError("Authentication failed - no session found")
        return session

    async def verify_email_token(self, token_hash: str, token_type: str) -> Optional[Session]:
        try:
            response = await self.client.auth.verify_otp({"token_hash": token_hash, "type": token_type})
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Email confirmation failed", e)
        return to_session(response.session)

    async def sign_out(self) -> None:
        try:
            await self.client.auth.sign_out()
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Sign out failed", e)

    def on_auth_state_change(self, callback: AuthStateCallback) -> Unsubscribable:
        return self.client.auth.on_auth_state_change(
            lambda event, session: callback(event, to_session(session))
        )

    async def update_user_metadata(self, patch: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self.client.auth.update_user({"data": patch})
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise self._error("Failed to update user metadata", e, screen="complete-profile")
        if response.user is None:
            raise AuthError("No authenticated user found", screen="complete-profile")
        return dict(response.user.user_metadata or {})

    @staticmethod
    def _error(context: str, exc: Exception, screen: str = "signin") -> AuthError:
        message = getattr(exc, "message", None) or str(exc) or context
        logger.warning(f"{context}: {message}")
        return AuthError(message, screen=screen)
