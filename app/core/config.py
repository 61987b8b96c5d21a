"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token services and
the operational scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class SpotifySettings(BaseSettings):
    """Client credentials and fixed endpoints of the Spotify accounts service."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(
        "2c4bd3a5174e4a2b8791221489ac5360",
        validation_alias="SPOTIFY_CLIENT_ID",
    )
    client_secret: str = Field(
        ..., validation_alias="SPOTIFY_CLIENT_SECRET"
    )
    redirect_uri: str = Field(
        "https://localhost:3000",
        validation_alias="SPOTIFY_REDIRECT_URI",
    )
    auth_url: str = Field(
        "https://accounts.spotify.com/authorize",
        validation_alias="SPOTIFY_AUTH_URL",
    )
    token_url: str = Field(
        "https://accounts.spotify.com/api/token",
        validation_alias="SPOTIFY_TOKEN_URL",
    )
    api_base_url: str = Field(
        "https://api.spotify.com/v1",
        validation_alias="SPOTIFY_API_BASE_URL",
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "user-read-playback-state",
            "user-modify-playback-state",
            "user-read-currently-playing",
            "playlist-modify-public",
            "playlist-modify-private",
            "user-library-read",
            "user-library-modify",
        ),
        validation_alias="OAUTH_SCOPES",
    )
    verify_state: bool = Field(
        False,
        validation_alias="OAUTH_VERIFY_STATE",
        description="Reject callbacks whose state does not match the caller's session.",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)


class SessionSettings(BaseSettings):
    """Signed session cookie configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    secret_key: Optional[str] = Field(
        None,
        validation_alias="SESSION_SECRET_KEY",
        description="Cookie signing key. Falls back to the Spotify client secret.",
    )
    cookie_name: str = Field(
        "spotify_session",
        validation_alias="SESSION_COOKIE_NAME",
    )
    https_only: bool = Field(
        False, validation_alias="SESSION_HTTPS_ONLY"
    )


class NetworkSettings(BaseSettings):
    """CORS origins and the optional client IP allowlist."""

    model_config = SettingsConfigDict(populate_by_name=True)

    cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("https://localhost:3000", "http://127.0.0.1:3000"),
        validation_alias="CORS_ORIGINS",
    )
    allowed_ip_ranges: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        validation_alias="ALLOWED_IP_RANGES",
        description="Exact IPv4 addresses or CIDR ranges. Empty disables the check.",
    )
    trust_forwarded_for: bool = Field(
        False,
        validation_alias="TRUST_FORWARDED_FOR",
    )

    @field_validator("cors_origins", "allowed_ip_ranges", mode="before")
    @classmethod
    def _split_lists(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        return _split_csv(value)


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(
        "development", validation_alias="APP_ENV"
    )
    log_level: str = Field(
        "INFO", validation_alias="APP_LOG_LEVEL"
    )
    token_db_path: str = Field(
        "data/tokens.db",
        validation_alias="TOKEN_DB_PATH",
    )
    http_timeout_seconds: float = Field(
        10.0,
        validation_alias="HTTP_TIMEOUT_SECONDS",
    )
    enable_debug_endpoints: Optional[bool] = Field(
        None,
        validation_alias="ENABLE_DEBUG_ENDPOINTS",
        description="Expose destructive debug routes. Defaults to off in production.",
    )
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)

    @property
    def debug_endpoints_enabled(self) -> bool:
        if self.enable_debug_endpoints is not None:
            return self.enable_debug_endpoints
        return self.environment.lower() != "production"

    @property
    def session_secret_key(self) -> str:
        return self.session.secret_key or self.spotify.client_secret


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "NetworkSettings",
    "OAuthSettings",
    "SessionSettings",
    "SpotifySettings",
    "get_settings",
]
