"""
Core dependencies for reading the per-request auth context
"""

from fastapi import Depends, Request

from marketplace.core.auth_context import AuthContext
from marketplace.core.contracts import Session
from marketplace.core.exceptions import AuthError
from marketplace.core.profile_resolver import ProfileResolver
from marketplace.core.route_gate import AuthState, RouteGate
from marketplace.database.data_service import SupabaseDataService
from marketplace.database.supabase_client import SupabaseClient


def get_auth_context(request: Request) -> AuthContext:
    context = getattr(request.state, "auth", None)
    if context is None:
        raise RuntimeError("RouteGateMiddleware is not installed")
    return context


def get_gate(context: AuthContext = Depends(get_auth_context)) -> RouteGate:
    return context.gate


def require_session(gate: RouteGate = Depends(get_gate)) -> Session:
    """Current session, or AuthError when signed out"""
    if gate.session is None:
        raise AuthError("You must be signed in")
    return gate.session


def require_complete_profile(gate: RouteGate = Depends(get_gate)) -> Session:
    if gate.session is None:
        raise AuthError("You must be signed in")
    if gate.state != AuthState.AUTHENTICATED_COMPLETE:
        raise AuthError("Complete your profile first", screen="complete-profile")
    return gate.session


async def get_public_resolver() -> ProfileResolver:
    """Resolver on the shared anon client, for public (ungated) endpoints"""
    client = await SupabaseClient.get_client()
    return ProfileResolver(SupabaseDataService(client))
