import logging

from starlette.requests import Request
from starlette.responses import RedirectResponse

from marketplace.core.auth_context import ContextFactory

logger = logging.getLogger(__name__)

SKIP_PATHS = ("/health", "/ready", "/docs", "/redoc", "/openapi.json")


class RouteGateMiddleware:
    """Mount an AuthContext per HTTP request and enforce the route gate.

    The context is fully resolved before the gate decides. Allowed requests
    see it as ``request.state.auth``; session cookies changed during the
    request are written on the response.
    """

    def __init__(self, app, context_factory: ContextFactory):
        self.app = app
        self.context_factory = context_factory

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["path"] in SKIP_PATHS:
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        context = await self.context_factory(request)

        async def send_with_cookies(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + context.cookies.set_cookie_headers()
            await send(message)

        async with context:
            decision = context.gate.decide(request.url.path, request.url.query)
            if not decision.allowed:
                logger.debug(f"Gate redirect {request.url.path} -> {decision.redirect_to} ({context.gate.state.value})")
                response = RedirectResponse(decision.redirect_to, status_code=303)
                await response(scope, receive, send_with_cookies)
                return
            scope.setdefault("state", {})["auth"] = context
            await self.app(scope, receive, send_with_cookies)
