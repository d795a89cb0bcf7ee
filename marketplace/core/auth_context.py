"""Per-request auth context: the services plus the mounted gate."""

import logging
from typing import Awaitable, Callable

from starlette.requests import Request

from marketplace.config import settings
from marketplace.core.contracts import BlobStorage, DataService, IdentityService
from marketplace.core.profile_resolver import ProfileResolver
from marketplace.core.route_gate import RouteGate
from marketplace.core.session_store import SessionStore
from marketplace.database.cookie_storage import CookieStorage

logger = logging.getLogger(__name__)


class AuthContext:
    def __init__(
        self,
        identity: IdentityService,
        data: DataService,
        blobs: BlobStorage,
        cookies: CookieStorage,
    ):
        self.identity = identity
        self.data = data
        self.blobs = blobs
        self.cookies = cookies
        self.store = SessionStore(identity)
        self.resolver = ProfileResolver(data)
        self.gate = RouteGate(self.store, self.resolver, settings.get_protected_prefixes())

    async def __aenter__(self) -> "AuthContext":
        self.store.open()
        try:
            await self.gate.__aenter__()
        except Exception:
            self.store.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.gate.unmount()
        self.store.close()


ContextFactory = Callable[[Request], Awaitable[AuthContext]]


async def supabase_context_factory(request: Request) -> AuthContext:
    from marketplace.database.data_service import SupabaseDataService
    from marketplace.database.supabase_client import SupabaseClient
    from marketplace.modules.auth.identity import SupabaseIdentityService
    from marketplace.modules.storage.service import build_blob_storage

    cookies = CookieStorage.from_cookies(request.cookies, settings.auth_cookie_name)
    client = await SupabaseClient.create_request_client(cookies)
    return AuthContext(
        identity=SupabaseIdentityService(client),
        data=SupabaseDataService(client),
        blobs=build_blob_storage(client),
        cookies=cookies,
    )
