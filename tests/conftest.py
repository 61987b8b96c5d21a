"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
    from ._fakes import SpotifyStub
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401
    from _fakes import SpotifyStub  # type: ignore

import httpx
import pytest

from app.clients.token_store import TokenStore
from app.core.config import OAuthSettings, SpotifySettings


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture()
def spotify_settings() -> SpotifySettings:
    return SpotifySettings(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://localhost:3000",
    )


@pytest.fixture()
def oauth_settings() -> OAuthSettings:
    return OAuthSettings()


@pytest.fixture()
def spotify_stub() -> SpotifyStub:
    return SpotifyStub()


@pytest.fixture()
def http_client(spotify_stub: SpotifyStub) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(spotify_stub.handler))


@pytest.fixture()
def token_store(tmp_path) -> TokenStore:
    return TokenStore(str(tmp_path / "tokens.db"))
