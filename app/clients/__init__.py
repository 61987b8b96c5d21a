"""Expose constructed client wrappers."""

from .spotify import (
    SpotifyApiClient,
    SpotifyMalformedResponseError,
    SpotifyOAuthClient,
    SpotifyUpstreamError,
)
from .token_store import TokenRecordNotFoundError, TokenStore

__all__ = [
    "SpotifyApiClient",
    "SpotifyMalformedResponseError",
    "SpotifyOAuthClient",
    "SpotifyUpstreamError",
    "TokenRecordNotFoundError",
    "TokenStore",
]
