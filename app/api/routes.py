"""
FastAPI routes for the Spotify token broker.

Every Spotify route uses the caller's session id as the only key for stored
tokens. Playback commands are fire-and-forget: they report success whatever
the upstream outcome was.
"""

from __future__ import annotations

import html
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse

from app.dependencies import (
    get_app_settings,
    get_session_id,
    get_spotify_api_service,
    get_token_gateway,
    get_token_lifecycle_manager,
)
from app.dependencies.session import invalidate_session
from app.models.results import GatewayResult, ResultKind
from app.schemas import AddToQueueRequest, ExchangeTokenRequest

router = APIRouter()
spotify_router = APIRouter(prefix="/spotify", tags=["spotify"])
debug_router = APIRouter(prefix="/spotify/debug", tags=["debug"])
logger = logging.getLogger(__name__)

SessionId = Annotated[str, Depends(get_session_id)]


def _passthrough(result: GatewayResult[Any]) -> Response:
    """
    Map a Web API result onto the HTTP response returned to the browser.

    Only a missing or unrefreshable login is a 401. Provider errors and
    unusable provider bodies are reported as 502 so the frontend does not
    send a logged-in user back through the consent flow.
    """
    if result.ok:
        if result.value is None:
            return Response(status_code=HTTPStatus.NO_CONTENT)
        return JSONResponse(content=result.value)
    if result.kind is ResultKind.UNAUTHENTICATED:
        return JSONResponse(
            status_code=HTTPStatus.UNAUTHORIZED,
            content={"success": False, "error": "Not authenticated with Spotify"},
        )
    return JSONResponse(
        status_code=HTTPStatus.BAD_GATEWAY,
        content={"success": False, "error": "Spotify request failed"},
    )


def _fire_and_forget(command: str, session_id: str, result: GatewayResult[Any]) -> dict:
    if not result.ok:
        logger.info(
            "Spotify %s for session %s did not complete (%s)",
            command,
            session_id,
            result.kind.value,
        )
    return {"success": True}


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@spotify_router.get("/auth-url", status_code=HTTPStatus.OK)
async def get_auth_url(
    session_id: SessionId,
    gateway: Annotated[Any, Depends(get_token_gateway)],
) -> dict:
    """Return the consent URL; the session id is embedded as OAuth state."""
    auth_url = gateway.build_authorization_url(session_id)
    return {"authUrl": auth_url, "sessionId": session_id}


@spotify_router.post("/exchange-token")
async def exchange_token(
    payload: ExchangeTokenRequest,
    session_id: SessionId,
    gateway: Annotated[Any, Depends(get_token_gateway)],
) -> JSONResponse:
    """Exchange an authorization code for tokens bound to this session."""
    result = await gateway.exchange_code_for_token(payload.code, session_id)
    if result.ok:
        return JSONResponse(content={"success": True, "accessToken": result.value})
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={"success": False, "error": "Token exchange failed"},
    )


@spotify_router.get("/current-playback")
async def get_current_playback(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> Response:
    return _passthrough(await api.current_playback(session_id))


@spotify_router.post("/play")
async def play(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> dict:
    return _fire_and_forget("play", session_id, await api.play(session_id))


@spotify_router.post("/pause")
async def pause(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> dict:
    return _fire_and_forget("pause", session_id, await api.pause(session_id))


@spotify_router.post("/next")
async def next_track(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> dict:
    return _fire_and_forget("next", session_id, await api.next_track(session_id))


@spotify_router.post("/previous")
async def previous_track(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> dict:
    return _fire_and_forget("previous", session_id, await api.previous_track(session_id))


@spotify_router.get("/search")
async def search(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
    q: str = Query(..., min_length=1, description="Free-text search query."),
    item_type: str = Query(default="track", alias="type", description="Comma-separated item types."),
    limit: int = Query(default=10, ge=1, le=50),
) -> Response:
    """Run a Spotify search and return the raw result payload."""
    return _passthrough(await api.search(session_id, q, item_type=item_type, limit=limit))


@spotify_router.post("/add-to-queue")
async def add_to_queue(
    payload: AddToQueueRequest,
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> dict:
    return _fire_and_forget(
        "add-to-queue", session_id, await api.add_to_queue(session_id, payload.uri)
    )


@spotify_router.get("/devices")
async def get_devices(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> Response:
    return _passthrough(await api.devices(session_id))


@spotify_router.get("/profile")
async def get_profile(
    session_id: SessionId,
    api: Annotated[Any, Depends(get_spotify_api_service)],
) -> Response:
    return _passthrough(await api.profile(session_id))


@spotify_router.post("/logout")
async def logout(
    request: Request,
    session_id: SessionId,
    lifecycle: Annotated[Any, Depends(get_token_lifecycle_manager)],
) -> dict:
    """Delete stored tokens and invalidate the session cookie."""
    lifecycle.logout(session_id)
    invalidate_session(request)
    return {"success": True}


@spotify_router.get("/callback", response_class=HTMLResponse)
async def oauth_callback(
    session_id: SessionId,
    gateway: Annotated[Any, Depends(get_token_gateway)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
) -> HTMLResponse:
    """
    Landing page for the Spotify redirect inside the login popup.

    The page closes the popup and, on success, reloads the opener window.
    """
    if error:
        logger.info("Spotify authorization denied for session %s: %s", session_id, error)
        return HTMLResponse(
            _callback_html(success=False, title="Authorization Error", message=f"Error: {error}")
        )

    if not code:
        return HTMLResponse(
            _callback_html(
                success=False,
                title="Authentication Failed",
                message="No authorization code was returned.",
            )
        )

    if state != session_id:
        if settings.oauth.verify_state:
            logger.warning("Rejected OAuth callback with mismatched state for session %s", session_id)
            return HTMLResponse(
                _callback_html(
                    success=False,
                    title="Authentication Failed",
                    message="The authorization response does not belong to this session.",
                )
            )
        logger.warning(
            "OAuth callback state does not match session %s; continuing without verification",
            session_id,
        )

    result = await gateway.exchange_code_for_token(code, session_id)
    if result.ok:
        return HTMLResponse(
            _callback_html(
                success=True,
                title="Success!",
                message="You have been successfully authenticated with Spotify.",
            )
        )
    return HTMLResponse(
        _callback_html(
            success=False,
            title="Authentication Failed",
            message="Failed to exchange code for token.",
        )
    )


@debug_router.post("/clear-all-tokens")
async def clear_all_tokens(
    lifecycle: Annotated[Any, Depends(get_token_lifecycle_manager)],
) -> dict:
    """Purge every stored token. Not for production use."""
    lifecycle.clear_all_tokens()
    return {"success": True, "message": "All tokens cleared"}


@debug_router.post("/force-unauthorized")
async def force_unauthorized(
    request: Request,
    session_id: SessionId,
    lifecycle: Annotated[Any, Depends(get_token_lifecycle_manager)],
) -> dict:
    lifecycle.logout(session_id)
    invalidate_session(request)
    return {"success": True, "message": "Forced logout"}


def _callback_html(*, success: bool, title: str, message: str) -> str:
    """Small page shown in the OAuth popup after the provider redirect."""
    script = (
        "if (window.opener) { window.opener.location.reload(); } window.close();"
        if success
        else "window.close();"
    )
    return (
        "<html><body>"
        f"<h1>{html.escape(title)}</h1>"
        f"<p>{html.escape(message)}</p>"
        f"<script>{script}</script>"
        "</body></html>"
    )


__all__ = ["debug_router", "router", "spotify_router"]
