try:
    from . import _bootstrap  # noqa: F401
    from ._fakes import make_record
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401
    from _fakes import make_record  # type: ignore

from datetime import timedelta
from types import SimpleNamespace

import httpx
import pytest

from app import dependencies
from app.clients import SpotifyApiClient, SpotifyOAuthClient, TokenStore
from app.core.config import AppSettings, OAuthSettings, SpotifySettings
from app.main import create_app
from app.services import SpotifyApiService, SpotifyTokenGateway, TokenLifecycleManager


def _build_broker(tmp_path, spotify_stub, http_client, **settings_overrides) -> SimpleNamespace:
    settings = AppSettings(
        token_db_path=str(tmp_path / "tokens.db"),
        spotify=SpotifySettings(client_id="client-id", client_secret="client-secret"),
        **settings_overrides,
    )
    store = TokenStore(settings.token_db_path)
    gateway = SpotifyTokenGateway(
        oauth_client=SpotifyOAuthClient(settings.spotify, settings.oauth, http_client),
        store=store,
    )
    lifecycle = TokenLifecycleManager(store=store, gateway=gateway)
    api_service = SpotifyApiService(lifecycle, SpotifyApiClient(settings.spotify, http_client))

    app = create_app(settings)
    app.dependency_overrides.update(
        {
            dependencies.get_token_gateway: lambda: gateway,
            dependencies.get_token_lifecycle_manager: lambda: lifecycle,
            dependencies.get_spotify_api_service: lambda: api_service,
        }
    )
    return SimpleNamespace(app=app, store=store, stub=spotify_stub, settings=settings)


@pytest.fixture()
def broker(tmp_path, spotify_stub, http_client) -> SimpleNamespace:
    return _build_broker(tmp_path, spotify_stub, http_client)


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


async def _login(client: httpx.AsyncClient, broker, *, expires_in=timedelta(hours=1)) -> str:
    """Bind a stored token to the client's session and return the session id."""
    session_id = (await client.get("/api/spotify/auth-url")).json()["sessionId"]
    broker.store.replace(make_record(session_id, expires_in=expires_in, access_token="A1"))
    return session_id


@pytest.mark.anyio
async def test_health(broker) -> None:
    async with _client(broker.app) as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.anyio
async def test_auth_url_is_stable_for_a_session(broker) -> None:
    async with _client(broker.app) as client:
        first = (await client.get("/api/spotify/auth-url")).json()
        second = (await client.get("/api/spotify/auth-url")).json()

    assert first["sessionId"] == second["sessionId"]
    assert first["authUrl"].startswith("https://accounts.spotify.com/authorize?client_id=client-id")
    assert first["authUrl"].endswith(f"&state={first['sessionId']}")


@pytest.mark.anyio
async def test_exchange_token_binds_tokens_to_the_session(broker) -> None:
    broker.stub.reply_token(json={"access_token": "A1", "refresh_token": "R1", "expires_in": 3600})

    async with _client(broker.app) as client:
        session_id = (await client.get("/api/spotify/auth-url")).json()["sessionId"]
        response = await client.post("/api/spotify/exchange-token", json={"code": "auth-code"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "accessToken": "A1"}
    stored = broker.store.get(session_id)
    assert stored is not None
    assert stored.refresh_token == "R1"


@pytest.mark.anyio
async def test_exchange_token_failure_returns_400(broker) -> None:
    broker.stub.reply_token(status_code=400, json={"error": "invalid_grant"})

    async with _client(broker.app) as client:
        response = await client.post("/api/spotify/exchange-token", json={"code": "bad"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Token exchange failed"}
    assert broker.store.count() == 0


@pytest.mark.anyio
async def test_exchange_token_requires_code(broker) -> None:
    async with _client(broker.app) as client:
        response = await client.post("/api/spotify/exchange-token", json={})

    assert response.status_code == 422


@pytest.mark.anyio
@pytest.mark.parametrize("path", ["/api/spotify/current-playback", "/api/spotify/devices", "/api/spotify/profile"])
async def test_reads_without_login_are_unauthorized(broker, path) -> None:
    async with _client(broker.app) as client:
        response = await client.get(path)

    assert response.status_code == 401
    assert broker.stub.requests == []


@pytest.mark.anyio
async def test_current_playback_passes_through_provider_json(broker) -> None:
    broker.stub.reply_api("GET", "/v1/me/player", json={"is_playing": True, "item": {"name": "Song"}})

    async with _client(broker.app) as client:
        await _login(client, broker)
        response = await client.get("/api/spotify/current-playback")

    assert response.status_code == 200
    assert response.json() == {"is_playing": True, "item": {"name": "Song"}}


@pytest.mark.anyio
async def test_current_playback_without_active_player_is_no_content(broker) -> None:
    broker.stub.reply_api("GET", "/v1/me/player", status_code=204)

    async with _client(broker.app) as client:
        await _login(client, broker)
        response = await client.get("/api/spotify/current-playback")

    assert response.status_code == 204


@pytest.mark.anyio
async def test_upstream_failure_maps_to_bad_gateway(broker) -> None:
    broker.stub.reply_api("GET", "/v1/me/player/devices", status_code=503, text="unavailable")

    async with _client(broker.app) as client:
        await _login(client, broker)
        response = await client.get("/api/spotify/devices")

    assert response.status_code == 502
    assert response.json()["success"] is False


@pytest.mark.anyio
@pytest.mark.parametrize("command", ["play", "pause", "next", "previous"])
async def test_playback_commands_always_report_success(broker, command) -> None:
    async with _client(broker.app) as client:
        response = await client.post(f"/api/spotify/{command}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert broker.stub.requests == []


@pytest.mark.anyio
async def test_play_forwards_to_spotify_when_logged_in(broker) -> None:
    broker.stub.reply_api("PUT", "/v1/me/player/play", status_code=204)

    async with _client(broker.app) as client:
        await _login(client, broker)
        response = await client.post("/api/spotify/play")

    assert response.json() == {"success": True}
    (request,) = broker.stub.api_requests
    assert request.headers["authorization"] == "Bearer A1"


@pytest.mark.anyio
async def test_search_forwards_encoded_query(broker) -> None:
    broker.stub.reply_api("GET", "/v1/search", json={"tracks": {"items": []}})

    async with _client(broker.app) as client:
        await _login(client, broker)
        response = await client.get("/api/spotify/search", params={"q": "daft punk"})

    assert response.status_code == 200
    assert response.json() == {"tracks": {"items": []}}
    assert broker.stub.api_requests[0].url.query == b"q=daft%20punk&type=track&limit=10"


@pytest.mark.anyio
async def test_search_requires_query(broker) -> None:
    async with _client(broker.app) as client:
        response = await client.get("/api/spotify/search")

    assert response.status_code == 422


@pytest.mark.anyio
async def test_add_to_queue(broker) -> None:
    broker.stub.reply_api("POST", "/v1/me/player/queue", status_code=204)

    async with _client(broker.app) as client:
        await _login(client, broker)
        response = await client.post("/api/spotify/add-to-queue", json={"uri": "spotify:track:xyz"})

    assert response.json() == {"success": True}
    assert broker.stub.api_requests[0].url.query == b"uri=spotify%3Atrack%3Axyz"


@pytest.mark.anyio
async def test_logout_deletes_tokens_and_resets_session(broker) -> None:
    async with _client(broker.app) as client:
        session_id = await _login(client, broker)
        response = await client.post("/api/spotify/logout")
        new_session_id = (await client.get("/api/spotify/auth-url")).json()["sessionId"]

    assert response.json() == {"success": True}
    assert broker.store.get(session_id) is None
    assert new_session_id != session_id


@pytest.mark.anyio
async def test_callback_success_reloads_opener(broker) -> None:
    broker.stub.reply_token(json={"access_token": "A1", "refresh_token": "R1", "expires_in": 3600})

    async with _client(broker.app) as client:
        session_id = (await client.get("/api/spotify/auth-url")).json()["sessionId"]
        response = await client.get(
            "/api/spotify/callback", params={"code": "auth-code", "state": session_id}
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Success!" in response.text
    assert "window.opener.location.reload()" in response.text
    assert broker.store.get(session_id) is not None


@pytest.mark.anyio
async def test_callback_failed_exchange_closes_popup(broker) -> None:
    broker.stub.reply_token(status_code=400, json={"error": "invalid_grant"})

    async with _client(broker.app) as client:
        response = await client.get("/api/spotify/callback", params={"code": "bad", "state": "x"})

    assert response.status_code == 200
    assert "Authentication Failed" in response.text
    assert "reload" not in response.text


@pytest.mark.anyio
async def test_callback_error_is_escaped(broker) -> None:
    async with _client(broker.app) as client:
        response = await client.get(
            "/api/spotify/callback", params={"error": "<script>alert(1)</script>"}
        )

    assert "Authorization Error" in response.text
    assert "<script>alert(1)</script>" not in response.text
    assert "&lt;script&gt;" in response.text
    assert broker.stub.requests == []


@pytest.mark.anyio
async def test_callback_accepts_foreign_state_by_default(broker) -> None:
    broker.stub.reply_token(json={"access_token": "A1", "refresh_token": "R1", "expires_in": 3600})

    async with _client(broker.app) as client:
        response = await client.get(
            "/api/spotify/callback", params={"code": "auth-code", "state": "someone-else"}
        )

    assert "Success!" in response.text


@pytest.mark.anyio
async def test_callback_rejects_foreign_state_when_verification_enabled(
    tmp_path, spotify_stub, http_client
) -> None:
    broker = _build_broker(
        tmp_path, spotify_stub, http_client, oauth=OAuthSettings(verify_state=True)
    )

    async with _client(broker.app) as client:
        response = await client.get(
            "/api/spotify/callback", params={"code": "auth-code", "state": "someone-else"}
        )

    assert "does not belong to this session" in response.text
    assert spotify_stub.requests == []
    assert broker.store.count() == 0


@pytest.mark.anyio
async def test_debug_clear_all_tokens(broker) -> None:
    for session_id in ("a", "b", "c"):
        broker.store.replace(make_record(session_id, expires_in=timedelta(hours=1)))

    async with _client(broker.app) as client:
        response = await client.post("/api/spotify/debug/clear-all-tokens")

    assert response.json() == {"success": True, "message": "All tokens cleared"}
    assert broker.store.count() == 0


@pytest.mark.anyio
async def test_debug_force_unauthorized(broker) -> None:
    async with _client(broker.app) as client:
        session_id = await _login(client, broker)
        response = await client.post("/api/spotify/debug/force-unauthorized")
        playback = await client.get("/api/spotify/current-playback")

    assert response.json() == {"success": True, "message": "Forced logout"}
    assert broker.store.get(session_id) is None
    assert playback.status_code == 401


@pytest.mark.anyio
async def test_debug_routes_are_absent_in_production(tmp_path, spotify_stub, http_client) -> None:
    broker = _build_broker(tmp_path, spotify_stub, http_client, environment="production")
    broker.store.replace(make_record("a", expires_in=timedelta(hours=1)))

    async with _client(broker.app) as client:
        response = await client.post("/api/spotify/debug/clear-all-tokens")

    assert response.status_code == 404
    assert broker.store.count() == 1
