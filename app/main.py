"""
FastAPI application entrypoint for the Spotify token broker.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.api.middleware import register_middleware
from app.api.routes import debug_router, router as api_router, spotify_router
from app.core.config import AppSettings, get_settings
from app.core.logging import configure_logging
from app.dependencies import close_http_client, get_app_settings


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    await close_http_client()


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """
    Factory for the FastAPI application.

    ``settings`` drives logging, middleware, router selection and the
    ``get_app_settings`` dependency. The shared store, HTTP client and
    Spotify services are still built from ``get_settings()``; override their
    dependencies to point them elsewhere.
    """
    explicit_settings = settings is not None
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Spotify Token Broker",
        version="0.1.0",
        description="Session-scoped OAuth broker and proxy for the Spotify Web API.",
        lifespan=_lifespan,
    )

    register_middleware(app, settings.network)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        session_cookie=settings.session.cookie_name,
        https_only=settings.session.https_only,
    )
    # Outermost, so allowlist 403s also carry CORS headers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.network.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")
    app.include_router(spotify_router, prefix="/api")
    if settings.debug_endpoints_enabled:
        app.include_router(debug_router, prefix="/api")
    if explicit_settings:
        app.dependency_overrides[get_app_settings] = lambda: settings
    return app


app = create_app()

__all__ = ["app", "create_app"]
