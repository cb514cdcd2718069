"""
FastAPI application for ompass2fa.

``install_two_factor_gate`` wires the OMPASS gate into an existing FastAPI
application. ``create_app`` builds a small demo host application that
trusts an identity header from an authenticating proxy.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Iterable, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from .api import admin_router, ompass_router
from .auth import (
    EmergencyOverride,
    OmpassSessionMiddleware,
    RemoteUserBackend,
    SessionManager,
    TwoFactorGate,
    TwoFactorGateMiddleware,
    resolve_identity,
)
from .core import (
    get_logger,
    get_settings,
    generate_request_id,
    Ompass2FAError,
    RequestLoggingContext,
    log_error,
)
from .services import ClientCache, ConfigurationProvider, InMemoryConfigurationProvider


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger = get_logger(__name__)
    settings = get_settings()

    logger.info(
        "Starting ompass2fa",
        version=settings.app_version,
        environment=settings.environment,
    )

    session_manager = getattr(app.state, "ompass_session_manager", None)
    if session_manager is not None:
        session_manager.cleanup_expired_sessions()

    yield

    client_cache = getattr(app.state, "ompass_client_cache", None)
    if client_cache is not None:
        client_cache.reset()

    logger.info("Shutting down ompass2fa")


def install_two_factor_gate(
    app: FastAPI,
    provider: Optional[ConfigurationProvider] = None,
    client_cache: Optional[ClientCache] = None,
    session_manager: Optional[SessionManager] = None,
    override: Optional[EmergencyOverride] = None,
    admin_users: Optional[Iterable[str]] = None,
) -> TwoFactorGate:
    """
    Enforce OMPASS 2FA on an existing FastAPI application.

    Adds the OMPASS endpoints, the session middleware and the gate
    middleware. The host's authentication middleware has to be added
    after this call so that it runs before the gate.

    Args:
        app: Host application
        provider: Configuration source; defaults to the environment settings
        client_cache: Shared OMPASS client cache
        session_manager: Session store
        override: Emergency override switch; defaults to the process-wide one
        admin_users: Identities allowed to change the configuration

    Returns:
        The installed gate
    """
    settings = get_settings()

    provider = provider or InMemoryConfigurationProvider.from_settings(settings)
    client_cache = client_cache or ClientCache(provider)
    session_manager = session_manager or SessionManager()
    gate = TwoFactorGate(provider, override=override)

    app.state.ompass_config_provider = provider
    app.state.ompass_client_cache = client_cache
    app.state.ompass_session_manager = session_manager
    app.state.ompass_gate = gate
    app.state.ompass_admin_users = list(
        admin_users if admin_users is not None else settings.ompass.admin_users
    )

    app.include_router(ompass_router)
    app.include_router(admin_router)

    # Last added runs first: sessions are loaded before the gate looks at them
    app.add_middleware(TwoFactorGateMiddleware, gate=gate)
    app.add_middleware(OmpassSessionMiddleware, session_manager=session_manager)

    return gate


def create_app(
    provider: Optional[ConfigurationProvider] = None,
    client_cache: Optional[ClientCache] = None,
    session_manager: Optional[SessionManager] = None,
    override: Optional[EmergencyOverride] = None,
    admin_users: Optional[Iterable[str]] = None,
) -> FastAPI:
    """Create the demo host application protected by OMPASS 2FA."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    install_two_factor_gate(
        app,
        provider=provider,
        client_cache=client_cache,
        session_manager=session_manager,
        override=override,
        admin_users=admin_users,
    )

    app.add_middleware(
        AuthenticationMiddleware,
        backend=RemoteUserBackend(settings.host.remote_user_header),
    )
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "timestamp": time.time()
        }

    @app.get(settings.host.login_path)
    async def login():
        """Login is handled by the authenticating proxy in front of the app."""
        return {"message": "Sign in through the authenticating proxy"}

    @app.get("/")
    def home(request: Request):
        return {"message": "Welcome", "user": resolve_identity(request)}

    @app.get("/job/{job_name}")
    def job(job_name: str, request: Request):
        return {"job": job_name, "user": resolve_identity(request)}

    @app.exception_handler(Ompass2FAError)
    async def ompass2fa_error_handler(request: Request, exc: Ompass2FAError):
        """Handle ompass2fa errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict()
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "message": exc.detail,
                    "type": "http_error"
                }
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        log_error(
            get_logger(__name__),
            exc,
            context={
                "method": request.method,
                "path": request.url.path,
            }
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": "Internal server error",
                    "type": "internal_error"
                }
            }
        )

    return app


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests."""

    def __init__(self, app):
        super().__init__(app)
        self.logger = get_logger(__name__)

    async def dispatch(self, request: Request, call_next):
        """Process request with logging."""
        request_id = generate_request_id()
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            with RequestLoggingContext(
                self.logger,
                method=request.method,
                path=request.url.path,
                client_ip=request.client.host if request.client else "unknown",
                user_agent=request.headers.get("user-agent"),
            ) as context:
                response = await call_next(request)
                context.status_code = response.status_code
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "ompass2fa.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        workers=settings.server.workers if not settings.server.reload else 1,
        log_level=settings.logging.level.lower(),
        access_log=False,  # We handle logging ourselves
    )
