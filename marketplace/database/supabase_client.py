import httpx
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from supabase_auth import AsyncSupportedStorage
from marketplace.config import settings


class SupabaseClient:
    _client: AsyncClient = None
    _http: httpx.AsyncClient = None

    @classmethod
    def get_http_client(cls) -> httpx.AsyncClient:
        """Connection pool shared by every Supabase client in the process"""
        if cls._http is None:
            cls._http = httpx.AsyncClient(
                timeout=settings.supabase_timeout_seconds,
                follow_redirects=True,
            )
        return cls._http

    @classmethod
    async def get_client(cls) -> AsyncClient:
        """Shared anon client for public reads. Never holds a user session."""
        if cls._client is None:
            cls._client = await acreate_client(
                settings.supabase_url,
                settings.supabase_key,
                options=AsyncClientOptions(
                    persist_session=False,
                    auto_refresh_token=False,
                    httpx_client=cls.get_http_client(),
                ),
            )
        return cls._client

    @classmethod
    async def create_request_client(cls, storage: AsyncSupportedStorage) -> AsyncClient:
        """Client bound to one request's session storage (cookies).

        Auth persists the session and PKCE verifier into ``storage``; data and
        storage calls then run with the user's JWT so RLS applies. Requests go
        through the shared connection pool, so nothing needs closing per request.
        """
        return await acreate_client(
            settings.supabase_url,
            settings.supabase_key,
            options=AsyncClientOptions(
                storage=storage,
                persist_session=True,
                auto_refresh_token=False,
                flow_type="pkce",
                httpx_client=cls.get_http_client(),
            ),
        )

    @classmethod
    async def close(cls) -> None:
        """Release the shared pool on shutdown"""
        http, cls._http = cls._http, None
        cls._client = None
        if http is not None:
            await http.aclose()
