"""
Token-endpoint operations against Spotify, persisted per web session.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from app.clients.spotify import (
    SpotifyMalformedResponseError,
    SpotifyOAuthClient,
    SpotifyUpstreamError,
)
from app.clients.token_store import TokenRecordNotFoundError, TokenStore
from app.models.oauth import TokenRecord
from app.models.results import GatewayResult, ResultKind

logger = logging.getLogger(__name__)


class SpotifyTokenGateway:
    """Builds consent URLs and turns code/refresh grants into stored tokens."""

    def __init__(self, oauth_client: SpotifyOAuthClient, store: TokenStore) -> None:
        self._oauth = oauth_client
        self._store = store

    def build_authorization_url(self, session_id: str) -> str:
        """The session id doubles as the OAuth ``state`` value."""
        return self._oauth.build_authorization_url(state=session_id)

    async def exchange_code_for_token(
        self, code: str, session_id: str
    ) -> GatewayResult[str]:
        """Exchange ``code`` and replace any token record held by the session."""
        try:
            token = await self._oauth.exchange_authorization_code(code)
        except SpotifyUpstreamError as exc:
            logger.warning("Code exchange failed for session %s: %s", session_id, exc)
            return GatewayResult.failure(ResultKind.UPSTREAM_FAILURE, str(exc))
        except SpotifyMalformedResponseError as exc:
            logger.warning(
                "Code exchange returned unusable payload for session %s: %s",
                session_id,
                exc,
            )
            return GatewayResult.failure(ResultKind.MALFORMED_RESPONSE, str(exc))

        received_at = datetime.now(timezone.utc)
        record = TokenRecord(
            session_id=session_id,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_at=received_at + timedelta(seconds=token.expires_in),
            created_at=received_at,
            updated_at=received_at,
        )
        self._store.replace(record)
        logger.info("Stored Spotify tokens for session %s", session_id)
        return GatewayResult.success(token.access_token)

    async def refresh_access_token(self, record: TokenRecord) -> GatewayResult[str]:
        """
        Refresh ``record`` in place.

        The stored refresh token is kept when the provider does not rotate it.
        On any failure the stored record is left untouched.
        """
        if not record.refresh_token:
            logger.info(
                "Session %s has no refresh token; re-authentication required",
                record.session_id,
            )
            return GatewayResult.failure(
                ResultKind.UNAUTHENTICATED, "No refresh token stored for session."
            )

        try:
            token = await self._oauth.refresh_token(record.refresh_token)
        except SpotifyUpstreamError as exc:
            logger.warning("Token refresh failed for session %s: %s", record.session_id, exc)
            return GatewayResult.failure(ResultKind.UPSTREAM_FAILURE, str(exc))
        except SpotifyMalformedResponseError as exc:
            logger.warning(
                "Token refresh returned unusable payload for session %s: %s",
                record.session_id,
                exc,
            )
            return GatewayResult.failure(ResultKind.MALFORMED_RESPONSE, str(exc))

        received_at = datetime.now(timezone.utc)
        refreshed = record.model_copy(
            update={
                "access_token": token.access_token,
                "expires_at": received_at + timedelta(seconds=token.expires_in),
                "refresh_token": token.refresh_token or record.refresh_token,
            }
        )
        try:
            self._store.update(refreshed)
        except TokenRecordNotFoundError:
            # Session logged out while the refresh was in flight.
            logger.info("Discarding refreshed token for session %s", record.session_id)
            return GatewayResult.failure(
                ResultKind.UNAUTHENTICATED, "Session logged out during refresh."
            )
        logger.info("Refreshed Spotify access token for session %s", record.session_id)
        return GatewayResult.success(token.access_token)


__all__ = ["SpotifyTokenGateway"]
