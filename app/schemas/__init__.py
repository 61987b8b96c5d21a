"""Public schema exports."""

from .auth import AddToQueueRequest, ExchangeTokenRequest, SpotifyTokenResponse

__all__ = [
    "AddToQueueRequest",
    "ExchangeTokenRequest",
    "SpotifyTokenResponse",
]
