"""Service layer exports."""

from .spotify_api import SpotifyApiService
from .spotify_gateway import SpotifyTokenGateway
from .token_lifecycle import TokenLifecycleManager

__all__ = [
    "SpotifyApiService",
    "SpotifyTokenGateway",
    "TokenLifecycleManager",
]
