"""
Spotify OAuth and Web API clients.

These wrappers speak the provider's HTTP contract and raise typed errors;
translating failures into result values happens in the service layer.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Optional
from urllib.parse import quote, urlencode

import httpx
from pydantic import ValidationError

from app.core.config import OAuthSettings, SpotifySettings
from app.schemas.auth import SpotifyTokenResponse


class SpotifyUpstreamError(Exception):
    """Raised on transport failures and non-2xx provider responses."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SpotifyMalformedResponseError(Exception):
    """Raised when a 2xx provider response cannot be used."""


def _basic_auth_header(client_id: str, client_secret: str) -> str:
    raw = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def _parse_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SpotifyMalformedResponseError(
            f"Response body from {response.request.url} is not valid JSON."
        ) from exc


class SpotifyOAuthClient:
    """Build Spotify authorization URLs and call the token endpoint."""

    def __init__(
        self,
        spotify_settings: SpotifySettings,
        oauth_settings: OAuthSettings,
        http_client: httpx.AsyncClient,
    ) -> None:
        self._spotify = spotify_settings
        self._oauth = oauth_settings
        self._http = http_client

    def build_authorization_url(self, state: str) -> str:
        """Construct the Spotify consent URL."""
        params = {
            "client_id": self._spotify.client_id,
            "response_type": "code",
            "redirect_uri": self._spotify.redirect_uri,
            "scope": " ".join(self._oauth.scopes),
            "state": state,
        }
        query = urlencode(params, quote_via=quote)
        return f"{self._spotify.auth_url}?{query}"

    async def exchange_authorization_code(self, code: str) -> SpotifyTokenResponse:
        """Exchange an authorization code for an access/refresh token pair."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._spotify.redirect_uri,
        }
        return await self._request_token(payload)

    async def refresh_token(self, refresh_token: str) -> SpotifyTokenResponse:
        """Mint a new access token from a stored refresh token."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        return await self._request_token(payload)

    async def _request_token(self, payload: dict[str, str]) -> SpotifyTokenResponse:
        headers = {
            "Authorization": _basic_auth_header(
                self._spotify.client_id, self._spotify.client_secret
            ),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        try:
            response = await self._http.post(
                self._spotify.token_url, data=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            raise SpotifyUpstreamError(f"Token request failed: {exc}") from exc

        if not response.is_success:
            raise SpotifyUpstreamError(
                f"Token endpoint returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        body = _parse_json(response)
        if not isinstance(body, dict):
            raise SpotifyMalformedResponseError("Token payload is not a JSON object.")
        try:
            token = SpotifyTokenResponse.model_validate(body)
        except ValidationError as exc:
            raise SpotifyMalformedResponseError(f"Unexpected token payload: {exc}") from exc

        if not token.access_token or token.expires_in is None:
            raise SpotifyMalformedResponseError(
                "Incomplete token payload returned from Spotify."
            )
        return token


class SpotifyApiClient:
    """Issue bearer-authenticated requests against the Spotify Web API."""

    def __init__(self, spotify_settings: SpotifySettings, http_client: httpx.AsyncClient) -> None:
        self._spotify = spotify_settings
        self._http = http_client

    async def request(
        self,
        access_token: str,
        path: str,
        method: str = "GET",
        body: Any = None,
    ) -> Any:
        """
        Call ``api_base_url + path`` and return the decoded JSON body.

        Returns ``None`` for 2xx responses without a body (e.g. 204 on
        playback commands).
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        url = f"{self._spotify.api_base_url}{path}"
        try:
            response = await self._http.request(
                method.upper(),
                url,
                headers=headers,
                content=json.dumps(body) if body is not None else None,
            )
        except httpx.HTTPError as exc:
            raise SpotifyUpstreamError(f"{method.upper()} {path} failed: {exc}") from exc

        if not response.is_success:
            raise SpotifyUpstreamError(
                f"{method.upper()} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content or not response.content.strip():
            return None
        return _parse_json(response)


__all__ = [
    "SpotifyApiClient",
    "SpotifyMalformedResponseError",
    "SpotifyOAuthClient",
    "SpotifyUpstreamError",
]
