"""
FastAPI application for the POS administration backend.

The key-value store is opened inside the lifespan (never at import time);
repositories and services are wired once and shared via ``app.state``.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from pos_api import __version__
from pos_api.core.config import Settings, get_settings
from pos_api.core.logging import configure_logging
from pos_api.core.rate_limiter import StoreRateLimiter
from pos_api.core.revalidation import PathRevalidator
from pos_api.db.errors import StoreError
from pos_api.db.selector import create_store
from pos_api.db.store import KVStore
from pos_api.repositories import Repositories
from pos_api.routers import admin as admin_router
from pos_api.routers import auth as auth_router
from pos_api.routers import health as health_router
from pos_api.routers import products as products_router
from pos_api.routers import setup as setup_router
from pos_api.services.api_key_service import ApiKeyError, ApiKeyService
from pos_api.services.auth_service import AuthError, AuthService
from pos_api.services.bootstrap_service import initialize_database
from pos_api.services.setup_service import SetupService

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _error_payload(exc) -> JSONResponse:
    return JSONResponse({"ok": False, "error": exc.code, "message": exc.message}, status_code=exc.status_code)


def _wire(app: FastAPI, settings: Settings, store: KVStore) -> None:
    revalidator = PathRevalidator()
    repos = Repositories.build(store, revalidator, session_ttl_seconds=settings.session_ttl_seconds)
    app.state.settings = settings
    app.state.store = store
    app.state.revalidator = revalidator
    app.state.repos = repos
    app.state.rate_limiter = StoreRateLimiter(store)
    app.state.auth_service = AuthService(users=repos.users, sessions=repos.sessions)
    app.state.api_key_service = ApiKeyService(repos.api_keys)
    app.state.setup_service = SetupService(settings, repos.users, repos.businesses, revalidator)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KVStore] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    """Build the application; pass ``store`` to share a pre-built store (tests, scripts)."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        active = store or create_store(settings)
        active.open()
        _wire(app, settings, active)
        if settings.bootstrap_on_startup:
            report = initialize_database(
                active, app.state.repos, max_retries=settings.bootstrap_max_retries, sleep=sleep
            )
            app.state.bootstrap_report = report
            if report.degraded:
                logger.warning("Started with a partially seeded database")
        try:
            yield
        finally:
            active.close()

    app = FastAPI(title="POS Admin API", version=__version__, lifespan=lifespan)
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.is_production)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_payload(exc)

    @app.exception_handler(ApiKeyError)
    async def api_key_error_handler(request: Request, exc: ApiKeyError):
        return _error_payload(exc)

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return _error_payload(exc)

    app.include_router(health_router.router)
    app.include_router(auth_router.router)
    app.include_router(products_router.router)
    app.include_router(setup_router.router)
    app.include_router(admin_router.router)
    return app


app = create_app()
