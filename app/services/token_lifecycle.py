"""
Helpers for retrieving and refreshing per-session Spotify access tokens.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from app.clients.token_store import TokenStore
from app.models.results import GatewayResult, ResultKind
from app.services.spotify_gateway import SpotifyTokenGateway

logger = logging.getLogger(__name__)


class TokenLifecycleManager:
    """Hands out access tokens, refreshing them shortly before they expire."""

    _REFRESH_WINDOW = timedelta(minutes=5)

    def __init__(self, store: TokenStore, gateway: SpotifyTokenGateway) -> None:
        self._store = store
        self._gateway = gateway

    async def get_valid_access_token(self, session_id: str) -> GatewayResult[str]:
        """Return a usable access token for the session, refreshing if needed."""
        record = self._store.get(session_id)
        if record is None:
            return GatewayResult.failure(
                ResultKind.UNAUTHENTICATED, "No Spotify tokens stored for session."
            )

        if not record.expires_within(self._REFRESH_WINDOW):
            return GatewayResult.success(record.access_token)

        logger.debug("Access token for session %s is near expiry; refreshing", session_id)
        return await self._gateway.refresh_access_token(record)

    def logout(self, session_id: str) -> bool:
        """Forget the tokens held by one session."""
        removed = self._store.delete(session_id)
        logger.info("Cleared Spotify tokens for session %s (found=%s)", session_id, removed)
        return removed

    def clear_all_tokens(self) -> int:
        """Delete every stored token record, regardless of session."""
        removed = self._store.delete_all()
        logger.warning("Cleared all stored Spotify tokens (%d records)", removed)
        return removed


__all__ = ["TokenLifecycleManager"]
