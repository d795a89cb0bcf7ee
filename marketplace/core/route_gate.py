"""
Route gate: which screen a user may see, given session and profile state.

``decide`` is the pure decision table. ``RouteGate`` owns the state machine
for one consumer (one request, one websocket, ...):

    async with RouteGate(store, resolver) as gate:
        decision = gate.decide(path)

Entering the context subscribes to session changes and fully resolves the
initial state (session first, then profile) before returning, so no decision
is ever made on a partial read. Leaving it unsubscribes unconditionally; any
resolution that finishes afterwards is discarded.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlencode

from pydantic import BaseModel

from marketplace.config import settings
from marketplace.core.contracts import Session, SessionChange, SessionEvent
from marketplace.core.exceptions import AuthError, MarketplaceError, ResolverError
from marketplace.core.profile_resolver import ProfileResolver
from marketplace.core.session_store import SessionStore, Subscription
from marketplace.modules.profiles.schemas import Profile

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/auth"
SIGN_IN_PATH = "/auth/signin"
COMPLETE_PROFILE_PATH = "/auth/complete-profile"
DASHBOARD_PATH = "/dashboard"
SIGN_OUT_PATH = "/auth/signout"

# Auth routes a signed-in user may still visit.
EXEMPT_AUTH_ROUTES = (
    COMPLETE_PROFILE_PATH,
    "/auth/callback",
    "/auth/oauth-callback",
)
ALWAYS_ALLOWED = (SIGN_OUT_PATH,)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_NO_PROFILE = "authenticated_no_profile"
    AUTHENTICATED_COMPLETE = "authenticated_complete"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    redirect_to: Optional[str] = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(allowed=True)

    @classmethod
    def redirect(cls, location: str) -> "GateDecision":
        return cls(allowed=False, redirect_to=location)


def path_matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def is_auth_route(path: str) -> bool:
    return path_matches(path, AUTH_PREFIX)


def is_exempt_auth_route(path: str) -> bool:
    return any(path_matches(path, route) for route in EXEMPT_AUTH_ROUTES)


def is_protected_route(path: str, protected_prefixes: Optional[List[str]] = None) -> bool:
    prefixes = protected_prefixes if protected_prefixes is not None else settings.get_protected_prefixes()
    return any(path_matches(path, prefix) for prefix in prefixes)


def safe_return_path(value: Optional[str]) -> Optional[str]:
    """Only same-site absolute paths are honoured as post-login targets."""
    if not value or not value.startswith("/") or value.startswith("//") or value.startswith("/\\"):
        return None
    return value


def sign_in_url(return_path: Optional[str] = None, error: Optional[str] = None) -> str:
    params = {}
    if return_path:
        params["redirectTo"] = return_path
    if error:
        params["error"] = error
    return f"{SIGN_IN_PATH}?{urlencode(params)}" if params else SIGN_IN_PATH


def decide(
    state: AuthState,
    path: str,
    query: str = "",
    protected_prefixes: Optional[List[str]] = None,
    error: Optional[str] = None,
) -> GateDecision:
    """Map (state, requested route) to allow or redirect."""
    if any(path_matches(path, route) for route in ALWAYS_ALLOWED):
        return GateDecision.allow()

    auth_route = is_auth_route(path)
    protected = is_protected_route(path, protected_prefixes)
    if not auth_route and not protected:
        return GateDecision.allow()

    if state == AuthState.UNAUTHENTICATED:
        if auth_route:
            return GateDecision.allow()
        target = f"{path}?{query}" if query else path
        return GateDecision.redirect(sign_in_url(target, error))

    if state == AuthState.AUTHENTICATED_NO_PROFILE:
        if auth_route and is_exempt_auth_route(path):
            return GateDecision.allow()
        return GateDecision.redirect(COMPLETE_PROFILE_PATH)

    # AUTHENTICATED_COMPLETE
    if auth_route and not is_exempt_auth_route(path):
        return GateDecision.redirect(DASHBOARD_PATH)
    return GateDecision.allow()


class AuthSnapshot(BaseModel):
    """What a page needs to know about the current user."""

    state: AuthState
    user: Optional[Session] = None
    profile: Optional[Profile] = None
    creator_profile: Optional[Dict[str, Any]] = None
    business_profile: Optional[Dict[str, Any]] = None
    is_signed_in: bool = False
    has_creator_profile: bool = False
    has_business_profile: bool = False


class RouteGate:
    def __init__(
        self,
        store: SessionStore,
        resolver: ProfileResolver,
        protected_prefixes: Optional[List[str]] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.protected_prefixes = protected_prefixes
        self.state = AuthState.UNAUTHENTICATED
        self.session: Optional[Session] = None
        self.profile: Optional[Profile] = None
        self.creator_profile: Optional[Dict[str, Any]] = None
        self.business_profile: Optional[Dict[str, Any]] = None
        self.error: Optional[MarketplaceError] = None
        self._generation = 0
        self._mounted = False
        self._subscription: Optional[Subscription] = None
        self._pending: Set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Mount / unmount
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "RouteGate":
        self.mount()
        await self.resolve()
        await self.settled()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.unmount()

    def mount(self) -> None:
        if self._subscription is None:
            self._subscription = self.store.on_session_change(self._on_session_change)
        self._mounted = True

    def unmount(self) -> None:
        self._mounted = False
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()

    @property
    def mounted(self) -> bool:
        return self._mounted

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def resolve(self) -> AuthState:
        """Fetch the session, then the profile, and apply the result."""
        generation = self._next_generation()
        try:
            session = await self.store.get_session()
        except AuthError as e:
            self._fail(generation, e)
            return self.state
        await self._resolve_session(generation, session)
        return self.state

    async def settled(self) -> None:
        """Wait for resolutions triggered by session events."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _resolve_session(self, generation: int, session: Optional[Session]) -> None:
        if session is None:
            self._apply(generation, AuthState.UNAUTHENTICATED)
            return
        try:
            resolution = await self.resolver.resolve_profile(session.user_id)
            creator, business = (None, None)
            if resolution.complete:
                creator, business = await self.resolver.fetch_listings(session.user_id)
        except ResolverError as e:
            self._fail(generation, e)
            return
        state = AuthState.AUTHENTICATED_COMPLETE if resolution.complete else AuthState.AUTHENTICATED_NO_PROFILE
        self._apply(generation, state, session, resolution.profile, creator, business)

    def _fail(self, generation: int, error: MarketplaceError) -> None:
        logger.warning(f"Auth state resolution failed, treating as signed out: {error.message}")
        self._apply(generation, AuthState.UNAUTHENTICATED, error=error)

    def _apply(
        self,
        generation: int,
        state: AuthState,
        session: Optional[Session] = None,
        profile: Optional[Profile] = None,
        creator: Optional[Dict[str, Any]] = None,
        business: Optional[Dict[str, Any]] = None,
        error: Optional[MarketplaceError] = None,
    ) -> bool:
        if not self._mounted or generation != self._generation:
            logger.debug(f"Discarding stale auth resolution (generation {generation})")
            return False
        self.state = state
        self.session = session
        self.profile = profile
        self.creator_profile = creator
        self.business_profile = business
        self.error = error
        return True

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _schedule(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _on_session_change(self, change: SessionChange) -> None:
        if not self._mounted:
            return
        if change.event == SessionEvent.SIGNED_OUT:
            self._next_generation()
            self._clear()
        elif change.event == SessionEvent.SIGNED_IN:
            generation = self._next_generation()
            self._schedule(self._resolve_session(generation, change.session))
        elif change.session is not None and self.session is not None:
            # Token refresh / metadata update: same user, same profile.
            self.session = change.session

    def _clear(self) -> None:
        self.state = AuthState.UNAUTHENTICATED
        self.session = None
        self.profile = None
        self.creator_profile = None
        self.business_profile = None
        self.error = None

    def profile_completed(self, profile: Profile) -> None:
        if self.state == AuthState.UNAUTHENTICATED or self.session is None:
            raise AuthError("No authenticated user found", screen="complete-profile")
        self._next_generation()
        self.profile = profile
        self.state = AuthState.AUTHENTICATED_COMPLETE
        self.error = None

    async def refresh_profiles(self) -> None:
        if self.session is None:
            return
        self.creator_profile, self.business_profile = await self.resolver.fetch_listings(self.session.user_id)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def is_signed_in(self) -> bool:
        return self.state != AuthState.UNAUTHENTICATED

    def decide(self, path: str, query: str = "") -> GateDecision:
        return decide(
            self.state,
            path,
            query,
            protected_prefixes=self.protected_prefixes,
            error=self.error.message if self.error else None,
        )

    def landing_path(self, return_path: Optional[str] = None) -> str:
        """Where a freshly authenticated user goes next."""
        if self.state == AuthState.AUTHENTICATED_NO_PROFILE:
            return COMPLETE_PROFILE_PATH
        if self.state == AuthState.AUTHENTICATED_COMPLETE:
            target = safe_return_path(return_path)
            if target and not (is_auth_route(target) and not is_exempt_auth_route(target)):
                return target
            return DASHBOARD_PATH
        return SIGN_IN_PATH

    def snapshot(self) -> AuthSnapshot:
        return AuthSnapshot(
            state=self.state,
            user=self.session,
            profile=self.profile,
            creator_profile=self.creator_profile,
            business_profile=self.business_profile,
            is_signed_in=self.is_signed_in,
            has_creator_profile=self.creator_profile is not None,
            has_business_profile=self.business_profile is not None,
        )
