"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    close_http_client,
    get_http_client,
    get_spotify_api_client,
    get_spotify_api_service,
    get_spotify_oauth_client,
    get_token_gateway,
    get_token_lifecycle_manager,
    get_token_store,
)
from .config import SettingsDependency, get_app_settings
from .session import get_session_id

__all__ = [
    "SettingsDependency",
    "close_http_client",
    "get_app_settings",
    "get_http_client",
    "get_session_id",
    "get_spotify_api_client",
    "get_spotify_api_service",
    "get_spotify_oauth_client",
    "get_token_gateway",
    "get_token_lifecycle_manager",
    "get_token_store",
]
