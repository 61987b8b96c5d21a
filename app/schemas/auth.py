"""Schemas related to OAuth flows."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Upper bound keeps expiry arithmetic inside the datetime range.
MAX_EXPIRES_IN_SECONDS = 10**9


class SpotifyTokenResponse(BaseModel):
    """Body returned by the Spotify ``/api/token`` endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    expires_in: Optional[int] = Field(None, ge=0, le=MAX_EXPIRES_IN_SECONDS)
    refresh_token: Optional[str] = None


class ExchangeTokenRequest(BaseModel):
    """Payload sent by the frontend to complete the code exchange."""

    code: str = Field(..., min_length=1, description="Authorization code returned by Spotify.")


class AddToQueueRequest(BaseModel):
    """Payload for queueing a track on the active device."""

    uri: str = Field(..., min_length=1, description="Spotify track URI, e.g. spotify:track:<id>.")


__all__ = ["AddToQueueRequest", "ExchangeTokenRequest", "SpotifyTokenResponse"]
