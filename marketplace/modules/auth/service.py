import logging
from typing import Any, Dict, Mapping, Optional

from fastapi import UploadFile

from marketplace.config import settings
from marketplace.core.auth_context import AuthContext
from marketplace.core.exceptions import AuthCallbackError, AuthError, ValidationError
from marketplace.core.route_gate import (
    AuthState,
    DASHBOARD_PATH,
    SIGN_IN_PATH,
    sign_in_url,
)
from marketplace.modules.auth.schemas import CompleteProfileForm, SignUpForm
from marketplace.modules.profiles.service import (
    USERNAME_TAKEN,
    ProfileService,
    check_availability,
    default_photo_url,
    suggest_username,
)
from marketplace.modules.storage.service import PhotoService

logger = logging.getLogger(__name__)

CHECK_EMAIL_PATH = "/auth/check-email"
AUTH_HOME_PATH = "/auth"


class AuthFlowService:
    """The auth pages: each call returns where the user goes next."""

    def __init__(self, context: AuthContext):
        self.context = context
        self.identity = context.identity
        self.store = context.store
        self.resolver = context.resolver
        self.gate = context.gate
        self.profiles = ProfileService(context.data)
        self.photos = PhotoService(context.blobs)

    async def _settle(self) -> None:
        """Wait for the SIGNED_IN resolution; resolve explicitly if none ran."""
        await self.gate.settled()
        if self.gate.session is None and self.gate.error is None:
            await self.gate.resolve()

    async def _ensure_username_available(self, username: str, screen: str) -> None:
        if not await self.resolver.is_username_available(username):
            raise ValidationError(USERNAME_TAKEN, fields={"username": [USERNAME_TAKEN]}, screen=screen)

    # -------------------------------------------------------------------------
    # Password sign in / sign up
    # -------------------------------------------------------------------------

    async def sign_in(self, email: str, password: str, redirect_to: Optional[str] = None) -> str:
        await self.identity.sign_in_with_password(email, password)
        await self._settle()
        if self.gate.error is not None:
            raise self.gate.error
        logger.info(f"User signed in: {email}")
        return self.gate.landing_path(redirect_to)

    async def sign_up(self, form: SignUpForm, photo: Optional[UploadFile] = None) -> str:
        prepared = await self.photos.prepare(photo, screen="signup")
        await self._ensure_username_available(form.username, screen="signup")

        metadata: Dict[str, Any] = {"username": form.username}
        photo_url = None
        if prepared is not None:
            photo_url = await self.photos.upload("signup", prepared)
            metadata["profile_photo_url"] = photo_url

        result = await self.identity.sign_up(
            form.email,
            form.password,
            metadata,
            redirect_url=settings.absolute_url("/auth/callback"),
        )
        logger.info(f"User registered: {result.email}")
        if result.needs_confirmation:
            return CHECK_EMAIL_PATH

        await self._settle()
        if self.gate.state == AuthState.AUTHENTICATED_NO_PROFILE:
            profile = await self.profiles.create_profile(
                result.user_id,
                form.username,
                result.email,
                photo_url,
                existing=self.gate.profile,
                screen="signup",
            )
            self.gate.profile_completed(profile)
        return self.gate.landing_path()

    async def recheck_confirmation(self) -> Optional[str]:
        """"I've confirmed my email": None while there is still no session."""
        await self.gate.resolve()
        if self.gate.error is not None:
            raise AuthError(self.gate.error.message, screen="check-email")
        if self.gate.session is None:
            return None
        return self.gate.landing_path()

    # -------------------------------------------------------------------------
    # OAuth
    # -------------------------------------------------------------------------

    async def start_oauth(self) -> str:
        try:
            return await self.identity.sign_in_with_oauth(
                settings.oauth_provider,
                settings.absolute_url("/auth/oauth-callback"),
            )
        except AuthError as e:
            logger.warning(f"OAuth start failed: {e.message}")
            return sign_in_url(error="Google sign in failed")

    async def handle_oauth_callback(self, params: Mapping[str, str]) -> str:
        error = params.get("error_description") or params.get("error")
        if error:
            logger.warning(f"OAuth provider returned an error: {error}")
            return sign_in_url(error=error)
        try:
            code = params.get("code")
            if code:
                await self.identity.exchange_code_for_session(code)
            await self._settle()
            if self.gate.error is not None:
                raise self.gate.error
            if self.gate.session is None:
                raise AuthError("No session found")
            return self.gate.landing_path()
        except Exception:
            logger.exception("Error in OAuth callback")
            return sign_in_url(error="Authentication failed")

    # -------------------------------------------------------------------------
    # Email confirmation link
    # -------------------------------------------------------------------------

    async def handle_email_callback(self, params: Mapping[str, str]) -> str:
        error = params.get("error_description") or params.get("error")
        code = params.get("code")
        token_hash = params.get("token_hash")
        access_token = params.get("access_token")
        if not (error or code or token_hash or access_token):
            return SIGN_IN_PATH
        if error:
            raise AuthCallbackError(error)
        try:
            if code:
                await self.identity.exchange_code_for_session(code)
            elif token_hash:
                await self.identity.verify_email_token(token_hash, params.get("type") or "email")
            else:
                await self.identity.set_session(access_token, params.get("refresh_token") or "")
        except AuthError as e:
            raise AuthCallbackError(e.message)
        await self._settle()
        if self.gate.error is not None:
            # ResolverError renders the same blocking screen
            raise self.gate.error
        if self.gate.session is None:
            raise AuthCallbackError("Authentication failed - no session found")
        return self.gate.landing_path()

    # -------------------------------------------------------------------------
    # Complete profile
    # -------------------------------------------------------------------------

    async def complete_profile_screen(self) -> Dict[str, Any]:
        session = self.gate.session
        suggestion = suggest_username(session)
        availability = await check_availability(self.resolver, suggestion)
        return {
            "email": session.email,
            "username": suggestion,
            "availability": availability.model_dump(),
            "photo_preview": default_photo_url(session),
        }

    async def complete_profile(self, form: CompleteProfileForm, photo: Optional[UploadFile] = None) -> str:
        session = self.gate.session
        if session is None:
            raise AuthError("No authenticated user found", screen="complete-profile")
        if self.gate.state == AuthState.AUTHENTICATED_COMPLETE:
            return DASHBOARD_PATH

        prepared = await self.photos.prepare(photo, screen="complete-profile")
        await self._ensure_username_available(form.username, screen="complete-profile")

        if prepared is not None:
            photo_url = await self.photos.upload(session.user_id, prepared)
        else:
            photo_url = default_photo_url(session)

        await self.identity.update_user_metadata({"username": form.username, "profile_completed": True})
        profile = await self.profiles.create_profile(
            session.user_id, form.username, session.email, photo_url, existing=self.gate.profile
        )
        self.gate.profile_completed(profile)
        logger.info(f"Profile completed for user {session.user_id}")
        return DASHBOARD_PATH

    # -------------------------------------------------------------------------
    # Sign out
    # -------------------------------------------------------------------------

    async def sign_out(self) -> str:
        await self.store.sign_out()
        self.context.cookies.clear()
        return AUTH_HOME_PATH
