from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware

from branchstore.core.config import Settings, get_settings
from branchstore.core.log import configure_logging
from branchstore.repositories.base import DocumentStore
from branchstore.routers import admin as admin_router
from branchstore.routers import contact as contact_router
from branchstore.routers import manager as manager_router
from branchstore.routers import marketplace as marketplace_router
from branchstore.services.factory import build_services


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers on every JSON response."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Cache-Control", "no-store")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    """Factory compatible with ``uvicorn --factory branchstore.app:create_app``."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings, store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        services.close()

    app = FastAPI(title="Marketplace data API", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    # Before the marketplace router, whose /{username} would shadow /contact.
    app.include_router(contact_router.router)
    app.include_router(marketplace_router.router)
    app.include_router(manager_router.router)
    app.include_router(admin_router.router)
    return app
