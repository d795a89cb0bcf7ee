import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from marketplace.config import settings
from marketplace.core.auth_context import ContextFactory, supabase_context_factory
from marketplace.core.exceptions import (
    AuthError,
    MarketplaceError,
    ResolverError,
    ValidationError,
)
from marketplace.core.gate_middleware import RouteGateMiddleware
from marketplace.core.rate_limit import limiter
from marketplace.core.route_gate import SIGN_IN_PATH
from marketplace.database.supabase_client import SupabaseClient
from marketplace.modules.auth import routes as auth_routes
from marketplace.modules.businesses import routes as businesses_routes
from marketplace.modules.creators import routes as creators_routes
from marketplace.modules.dashboard import routes as dashboard_routes
from marketplace.modules.profiles import routes as profiles_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

RETURN_TO_SIGN_IN = {"label": "Return to Sign In", "href": SIGN_IN_PATH}


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        content = {"screen": exc.screen, **exc.to_dict()}
        if exc.screen == "auth-error":
            content["action"] = RETURN_TO_SIGN_IN
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(ResolverError)
    async def resolver_error_handler(request: Request, exc: ResolverError):
        logger.error(f"Profile resolution failed on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"screen": "auth-error", **exc.to_dict(), "action": RETURN_TO_SIGN_IN},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=exc.status_code, content={"screen": exc.screen, **exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError.from_pydantic(exc)
        return JSONResponse(status_code=error.status_code, content={"screen": None, **error.to_dict()})

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        if settings.is_production:
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app(context_factory: Optional[ContextFactory] = None) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        redirect_slashes=False,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    app.add_middleware(RouteGateMiddleware, context_factory=context_factory or supabase_context_factory)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_routes.router)
    app.include_router(dashboard_routes.router)
    app.include_router(profiles_routes.router)
    app.include_router(creators_routes.router)
    app.include_router(businesses_routes.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Application startup ({settings.environment}, storage={settings.storage_backend})")

    @app.on_event("shutdown")
    async def shutdown_event():
        await SupabaseClient.close()
        logger.info("Application shutdown")

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}

    @app.get("/health")
    @limiter.exempt
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    @limiter.exempt
    async def ready():
        """Readiness probe"""
        return {"status": "ready"}

    return app


app = create_app()
