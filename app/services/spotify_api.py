"""
Authenticated Spotify Web API operations keyed by web session.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from app.clients.spotify import (
    SpotifyApiClient,
    SpotifyMalformedResponseError,
    SpotifyUpstreamError,
)
from app.models.results import GatewayResult, ResultKind
from app.services.token_lifecycle import TokenLifecycleManager

logger = logging.getLogger(__name__)


class SpotifyApiService:
    """Forward playback and search calls with an automatically refreshed token."""

    def __init__(self, lifecycle: TokenLifecycleManager, api_client: SpotifyApiClient) -> None:
        self._lifecycle = lifecycle
        self._api = api_client

    async def call_api(
        self,
        session_id: str,
        path: str,
        method: str = "GET",
        body: Any = None,
    ) -> GatewayResult[Any]:
        """
        Call the Web API on behalf of ``session_id``.

        Without a valid token no upstream request is made and the result is
        ``UNAUTHENTICATED``.
        """
        token = await self._lifecycle.get_valid_access_token(session_id)
        if not token.ok:
            return GatewayResult.failure(ResultKind.UNAUTHENTICATED, token.error or token.kind.value)

        try:
            payload = await self._api.request(token.value, path, method=method, body=body)
        except SpotifyUpstreamError as exc:
            logger.warning("Spotify API call failed for session %s: %s", session_id, exc)
            return GatewayResult.failure(ResultKind.UPSTREAM_FAILURE, str(exc))
        except SpotifyMalformedResponseError as exc:
            logger.warning("Spotify API returned unusable body for session %s: %s", session_id, exc)
            return GatewayResult.failure(ResultKind.MALFORMED_RESPONSE, str(exc))
        return GatewayResult.success(payload)

    async def current_playback(self, session_id: str) -> GatewayResult[Any]:
        return await self.call_api(session_id, "/me/player")

    async def play(self, session_id: str) -> GatewayResult[Any]:
        return await self.call_api(session_id, "/me/player/play", method="PUT")

    async def pause(self, session_id: str) -> GatewayResult[Any]:
        return await self.call_api(session_id, "/me/player/pause", method="PUT")

    async def next_track(self, session_id: str) -> GatewayResult[Any]:
        return await self.call_api(session_id, "/me/player/next", method="POST")

    async def previous_track(self, session_id: str) -> GatewayResult[Any]:
        return await self.call_api(session_id, "/me/player/previous", method="POST")

    async def search(
        self,
        session_id: str,
        query: str,
        *,
        item_type: str = "track",
        limit: int = 10,
    ) -> GatewayResult[Any]:
        path = f"/search?q={quote(query, safe='')}&type={quote(item_type, safe=',')}&limit={limit}"
        return await self.call_api(session_id, path)

    async def add_to_queue(self, session_id: str, uri: str) -> GatewayResult[Any]:
        path = f"/me/player/queue?uri={quote(uri, safe='')}"
        return await self.call_api(session_id, path, method="POST")

    async def devices(self, session_id: str) -> GatewayResult[Any]:
        return await self.call_api(session_id, "/me/player/devices")

    async def profile(self, session_id: str) -> GatewayResult[Any]:
        return await self.call_api(session_id, "/me")


__all__ = ["SpotifyApiService"]
