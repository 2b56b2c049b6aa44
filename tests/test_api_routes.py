from __future__ import annotations

import importlib
import sys

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from config.settings import Settings
from spotify.client import SpotifyAPIError

SEED_ID = "4uLU6hMCjMI75M1A2tKUQC"
PLAYLIST_ID = "37i9dQZF1DXcBWIGoYBM5M"
OTHER_ID = "0DiWol3AO6WpXZgp0goxAV"


class _FakeSpotify:
    def __init__(self) -> None:
        self.saved: list[list[str]] = []
        self.removed: list[list[str]] = []
        self.playback_state = None
        self.current_user_error: Exception | None = None
        self.search_error: Exception | None = None
        self.search_items: list[dict] = []
        self.played: list[tuple[str, str | None]] = []

    async def get_current_user(self):
        if self.current_user_error is not None:
            raise self.current_user_error
        return {"id": "listener", "display_name": "Listener"}

    async def search_tracks(self, query, limit=20):
        if self.search_error is not None:
            raise self.search_error
        return {"tracks": {"items": self.search_items, "total": len(self.search_items)}}

    async def check_saved_tracks(self, track_ids):
        return [False for _ in track_ids]

    async def save_tracks(self, track_ids):
        self.saved.append(list(track_ids))

    async def remove_tracks(self, track_ids):
        self.removed.append(list(track_ids))

    async def get_track(self, track_id):
        return {"id": track_id, "artists": [{"id": "artist-1"}]}

    async def get_artist_top_tracks(self, artist_id, market="US"):
        if artist_id == "artist-1":
            return {"tracks": [{"id": SEED_ID}, {"id": "top-1"}, {"id": "top-2"}]}
        return {"tracks": [{"id": "top-2"}, {"id": "related-1"}]}

    async def get_related_artists(self, artist_id):
        return {"artists": [{"id": "artist-2"}]}

    async def get_playlists(self, limit=50):
        return {"items": [{"id": "p1", "name": "Mix"}], "total": 1}

    async def add_to_playlist(self, playlist_id, track_uri):
        return {"snapshot_id": "s"}

    async def is_track_in_playlist(self, playlist_id, track_id):
        if playlist_id == "broken":
            raise SpotifyAPIError(404, "gone")
        return playlist_id == "p1"

    async def get_currently_playing(self):
        return None

    async def get_playback_state(self):
        return self.playback_state

    async def play_track(self, track_uri, device_id=None):
        self.played.append((track_uri, device_id))


def _build_client(
    monkeypatch,
    spotify: _FakeSpotify | None = None,
    *,
    authenticated: bool = True,
    settings: Settings | None = None,
    raise_server_exceptions: bool = True,
) -> tuple[TestClient, object]:
    sys.modules.pop("api.main", None)
    module = importlib.import_module("api.main")
    module.app.router.on_startup.clear()
    module.app.router.on_shutdown.clear()
    tokens: list[str] = []

    def _factory(token):
        tokens.append(token)
        return spotify or _FakeSpotify()

    monkeypatch.setattr(module, "_spotify_client_factory", _factory)
    module.issued_tokens = tokens
    if settings is not None:
        monkeypatch.setattr(module, "SETTINGS", settings)
    client = TestClient(module.app, raise_server_exceptions=raise_server_exceptions)
    if authenticated:
        client.cookies.set("spotify_access_token", "token-1")
    return client, module


def _configured() -> Settings:
    return Settings(
        spotify_client_id="client-1",
        spotify_client_secret="secret-1",
        spotify_redirect_uri="http://testserver/api/auth/callback",
    )


def test_health_sets_security_and_request_id_headers(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch, authenticated=False)

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "app": "spillover", "version": "1.0.0"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]
    assert len(response.headers["X-Request-ID"]) == 8


def test_missing_session_is_unauthorized(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch, authenticated=False)

    response = client.get("/api/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}


def test_refresh_cookie_mints_new_access_token(monkeypatch) -> None:
    client, module = _build_client(monkeypatch, authenticated=False, settings=_configured())
    client.cookies.set("spotify_refresh_token", "refresh-1")
    monkeypatch.setattr(
        "api.session.refresh_access_token",
        lambda client_id, client_secret, refresh_token: {"access_token": "fresh", "expires_in": 3600},
    )

    response = client.get("/api/me")

    assert response.status_code == 200
    assert response.json()["id"] == "listener"
    assert module.issued_tokens == ["fresh"]
    assert "spotify_access_token=fresh" in response.headers["set-cookie"]


def test_failed_refresh_expires_session(monkeypatch) -> None:
    from spotify.oauth_client import SpotifyAuthError

    client, _module = _build_client(monkeypatch, authenticated=False, settings=_configured())
    client.cookies.set("spotify_refresh_token", "refresh-1")

    def _fail(client_id, client_secret, refresh_token):
        raise SpotifyAuthError("spotify refresh failed: invalid_grant")

    monkeypatch.setattr("api.session.refresh_access_token", _fail)

    response = client.get("/api/me")

    assert response.status_code == 401
    assert response.json()["error"] == "Session expired. Please log in again."


def test_spotify_unauthorized_passes_through(monkeypatch) -> None:
    spotify = _FakeSpotify()
    spotify.current_user_error = SpotifyAPIError(401, "The access token expired")
    client, _module = _build_client(monkeypatch, spotify)

    response = client.get("/api/me")

    assert response.status_code == 401
    assert response.json() == {"error": "The access token expired"}


def test_unexpected_error_is_a_json_500(monkeypatch) -> None:
    spotify = _FakeSpotify()
    spotify.search_error = RuntimeError("boom")
    client, _module = _build_client(monkeypatch, spotify, raise_server_exceptions=False)

    response = client.get("/api/search", params={"q": "daft punk"})

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}


def test_search_validation(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch)

    assert client.get("/api/search").json() == {"error": "Missing query parameter"}
    assert client.get("/api/search", params={"q": "x" * 201}).json() == {"error": "Query too long (max 200 characters)"}
    assert client.get("/api/search", params={"q": "   "}).json() == {"error": "Query cannot be empty"}


def test_search_adds_suggestions_for_thin_results(monkeypatch) -> None:
    spotify = _FakeSpotify()
    spotify.search_items = [{"id": "a"}]
    client, _module = _build_client(monkeypatch, spotify)

    response = client.get("/api/search", params={"q": "Daft Punk - One More Time (Official Video)"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 1
    assert payload["tracks"] == [{"id": "a", "isLiked": False}]
    assert payload["suggestions"][0] == "daft punk - one more time"


def test_like_and_unlike(monkeypatch) -> None:
    spotify = _FakeSpotify()
    client, _module = _build_client(monkeypatch, spotify)

    liked = client.post("/api/like", json={"trackId": SEED_ID})
    unliked = client.request("DELETE", "/api/like", json={"trackId": SEED_ID})
    invalid = client.post("/api/like", json={"trackId": "short"})
    missing = client.post("/api/like", json={})

    assert liked.json() == {"success": True, "liked": True}
    assert unliked.json() == {"success": True, "liked": False}
    assert spotify.saved == [[SEED_ID]]
    assert spotify.removed == [[SEED_ID]]
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid track ID format"
    assert missing.json()["error"] == "Missing track ID"


def test_malformed_json_body(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch)

    response = client.post("/api/like", content="{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON body"}


def test_bulk_like_limits(monkeypatch) -> None:
    spotify = _FakeSpotify()
    client, _module = _build_client(monkeypatch, spotify)

    too_many = client.post("/api/like/bulk", json={"trackIds": [SEED_ID] * 101})
    not_list = client.post("/api/like/bulk", json={"trackIds": SEED_ID})
    bad_id = client.post("/api/like/bulk", json={"trackIds": [SEED_ID, "nope"]})
    ok = client.post("/api/like/bulk", json={"trackIds": [SEED_ID, OTHER_ID]})

    assert too_many.json()["error"] == "Maximum 100 tracks per request"
    assert not_list.json()["error"] == "Missing or invalid trackIds array"
    assert bad_id.json()["error"] == "Invalid track ID format: nope"
    assert ok.json() == {"success": True, "liked": 2}
    assert spotify.saved == [[SEED_ID, OTHER_ID]]


def test_suggestions_exclude_seeds_and_duplicates(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch)

    response = client.get("/api/suggestions", params={"seeds": SEED_ID})
    invalid = client.get("/api/suggestions", params={"seeds": "bad"})

    assert [track["id"] for track in response.json()["tracks"]] == ["top-1", "top-2", "related-1"]
    assert invalid.json()["error"] == "Invalid track ID format"


def test_playlists_and_duplicate_check(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch)

    playlists = client.get("/api/playlists")
    added = client.post(
        "/api/playlist/add",
        json={"playlistId": PLAYLIST_ID, "trackUri": f"spotify:track:{SEED_ID}"},
    )
    bad_uri = client.post("/api/playlist/add", json={"playlistId": PLAYLIST_ID, "trackUri": "spotify:album:x"})
    bad_playlist = client.post("/api/playlist/add", json={"playlistId": "p1", "trackUri": f"spotify:track:{SEED_ID}"})
    no_playlist = client.post("/api/playlist/add", json={"trackUri": f"spotify:track:{SEED_ID}"})
    duplicates = client.post(
        "/api/playlist/check-duplicates",
        json={"trackId": SEED_ID, "playlistIds": ["p1", "p2", "broken"]},
    )

    assert playlists.json() == {"playlists": [{"id": "p1", "name": "Mix"}], "total": 1}
    assert added.json() == {"success": True}
    assert bad_uri.json()["error"] == "Invalid track URI format"
    assert bad_playlist.status_code == 400
    assert bad_playlist.json()["error"] == "Invalid playlist ID format"
    assert no_playlist.json()["error"] == "Missing playlist ID"
    assert duplicates.json() == {"duplicates": {"p1": True, "p2": False, "broken": False}}


def test_player_requires_active_device(monkeypatch) -> None:
    spotify = _FakeSpotify()
    client, _module = _build_client(monkeypatch, spotify)
    uri = f"spotify:track:{SEED_ID}"

    idle = client.post("/api/player/play", json={"trackUri": uri})
    spotify.playback_state = {"device": {"id": "dev-1", "name": "Desk"}, "is_playing": True}
    playing = client.post("/api/player/play", json={"trackUri": uri})
    state = client.get("/api/player/state")
    now_playing = client.get("/api/now-playing")

    assert idle.status_code == 400
    assert idle.json()["error"].startswith("No active Spotify session")
    assert playing.json() == {"success": True, "message": "Now playing", "device": "Desk"}
    assert spotify.played == [(uri, "dev-1")]
    assert state.json()["hasActiveSession"] is True
    assert now_playing.json() == {"playing": False}


def test_rate_limit_returns_retry_after(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch)

    statuses = [client.get("/api/me").status_code for _ in range(30)]
    blocked = client.get("/api/me")

    assert statuses == [200] * 30
    assert blocked.status_code == 429
    assert blocked.json() == {"error": "Too many requests. Please slow down."}
    assert int(blocked.headers["Retry-After"]) >= 1


def test_login_requires_configuration(monkeypatch) -> None:
    client, _module = _build_client(
        monkeypatch,
        authenticated=False,
        settings=Settings(spotify_client_id=None, spotify_client_secret=None, spotify_redirect_uri=None),
    )

    response = client.get("/api/auth/login", follow_redirects=False)

    assert response.status_code == 500
    assert response.json() == {"error": "Spotify OAuth is not configured"}


def test_login_redirects_to_spotify_with_state_cookie(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch, authenticated=False, settings=_configured())

    response = client.get("/api/auth/login", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"].startswith("https://accounts.spotify.com/authorize?")
    assert "client_id=client-1" in response.headers["location"]
    assert "spotify_auth_state=" in response.headers["set-cookie"]


def test_callback_rejects_state_mismatch(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch, authenticated=False, settings=_configured())
    client.cookies.set("spotify_auth_state", "expected")

    response = client.get("/api/auth/callback", params={"code": "c", "state": "other"}, follow_redirects=False)
    denied = client.get("/api/auth/callback", params={"error": "access_denied"}, follow_redirects=False)

    assert response.headers["location"] == "/?error=state_mismatch"
    assert denied.headers["location"] == "/?error=access_denied"


def test_callback_stores_tokens(monkeypatch) -> None:
    client, module = _build_client(monkeypatch, authenticated=False, settings=_configured())
    client.cookies.set("spotify_auth_state", "state-1")
    exchanged = []

    def _fake_exchange(client_id, client_secret, code, redirect_uri):
        exchanged.append((client_id, code, redirect_uri))
        return {"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3600}

    monkeypatch.setattr(module, "exchange_code_for_tokens", _fake_exchange)

    response = client.get("/api/auth/callback", params={"code": "code-1", "state": "state-1"}, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/"
    cookies = response.headers["set-cookie"]
    assert "spotify_access_token=access-1" in cookies
    assert "spotify_refresh_token=refresh-1" in cookies
    assert exchanged == [("client-1", "code-1", "http://testserver/api/auth/callback")]


def test_logout_clears_cookies(monkeypatch) -> None:
    client, _module = _build_client(monkeypatch)

    response = client.get("/api/auth/logout", follow_redirects=False)

    assert response.status_code == 302
    cookies = response.headers["set-cookie"]
    assert "spotify_access_token=" in cookies
    assert "spotify_refresh_token=" in cookies
    assert "Max-Age=0" in cookies


def test_rotating_forwarded_for_does_not_reset_the_limit(monkeypatch) -> None:
    monkeypatch.delenv("SPILLOVER_TRUST_PROXY", raising=False)
    client, _module = _build_client(monkeypatch)

    statuses = [
        client.get("/api/me", headers={"X-Forwarded-For": f"10.0.0.{index}"}).status_code
        for index in range(31)
    ]

    assert statuses[:30] == [200] * 30
    assert statuses[30] == 429
