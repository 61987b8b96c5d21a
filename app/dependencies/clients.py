"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

import httpx

from app.clients import SpotifyApiClient, SpotifyOAuthClient, TokenStore
from app.core.config import get_settings
from app.services import SpotifyApiService, SpotifyTokenGateway, TokenLifecycleManager


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_http_client() -> httpx.AsyncClient:
    """Provide the process-wide HTTP client used for all upstream calls."""
    settings = _settings()
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


async def close_http_client() -> None:
    """Close the shared HTTP client and drop every service built on top of it."""
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
    for factory in (
        get_http_client,
        get_spotify_oauth_client,
        get_spotify_api_client,
        get_token_gateway,
        get_token_lifecycle_manager,
        get_spotify_api_service,
    ):
        factory.cache_clear()


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide shared SQLite token store."""
    settings = _settings()
    return TokenStore(settings.token_db_path)


@lru_cache()
def get_spotify_oauth_client() -> SpotifyOAuthClient:
    """Create a singleton Spotify OAuth client."""
    settings = _settings()
    return SpotifyOAuthClient(settings.spotify, settings.oauth, get_http_client())


@lru_cache()
def get_spotify_api_client() -> SpotifyApiClient:
    """Create a singleton Spotify Web API client."""
    settings = _settings()
    return SpotifyApiClient(settings.spotify, get_http_client())


@lru_cache()
def get_token_gateway() -> SpotifyTokenGateway:
    """Provide the code/refresh grant gateway."""
    return SpotifyTokenGateway(
        oauth_client=get_spotify_oauth_client(),
        store=get_token_store(),
    )


@lru_cache()
def get_token_lifecycle_manager() -> TokenLifecycleManager:
    """Provide the expiry-aware access token manager."""
    return TokenLifecycleManager(
        store=get_token_store(),
        gateway=get_token_gateway(),
    )


@lru_cache()
def get_spotify_api_service() -> SpotifyApiService:
    """Provide the session-scoped Web API service."""
    return SpotifyApiService(
        lifecycle=get_token_lifecycle_manager(),
        api_client=get_spotify_api_client(),
    )


__all__ = [
    "close_http_client",
    "get_http_client",
    "get_spotify_api_client",
    "get_spotify_api_service",
    "get_spotify_oauth_client",
    "get_token_gateway",
    "get_token_lifecycle_manager",
    "get_token_store",
]
