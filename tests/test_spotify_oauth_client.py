from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

import spotify.oauth_client as oauth_client
from spotify.oauth_client import (
    SpotifyAuthError,
    build_auth_url,
    exchange_code_for_tokens,
    generate_state,
    refresh_access_token,
)


class _FakeResponse:
    def __init__(self, status_code: int, payload=None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload


def test_build_auth_url_includes_required_params() -> None:
    url = build_auth_url("client-1", "http://localhost/api/auth/callback", "user-library-read", "state-1")
    parsed = urlparse(url)
    params = parse_qs(parsed.query)

    assert url.startswith(oauth_client.SPOTIFY_AUTH_URL)
    assert params["client_id"] == ["client-1"]
    assert params["response_type"] == ["code"]
    assert params["redirect_uri"] == ["http://localhost/api/auth/callback"]
    assert params["state"] == ["state-1"]
    assert "show_dialog" not in params
    assert "show_dialog=true" in build_auth_url("c", "r", "s", "x", show_dialog=True)


def test_generate_state_is_random_hex() -> None:
    first = generate_state()
    assert len(first) == 32
    assert first != generate_state()


def test_exchange_code_posts_authorization_grant(monkeypatch) -> None:
    captured = {}

    def _fake_post(url, data=None, timeout=None):
        captured["url"] = url
        captured["data"] = data
        return _FakeResponse(200, {"access_token": "a", "refresh_token": "r", "expires_in": 3600})

    monkeypatch.setattr(oauth_client.requests, "post", _fake_post)

    tokens = exchange_code_for_tokens("cid", "secret", "code-1", "http://localhost/cb")

    assert tokens["access_token"] == "a"
    assert captured["url"] == oauth_client.SPOTIFY_TOKEN_URL
    assert captured["data"]["grant_type"] == "authorization_code"
    assert captured["data"]["code"] == "code-1"


def test_refresh_failure_raises(monkeypatch) -> None:
    monkeypatch.setattr(
        oauth_client.requests,
        "post",
        lambda url, data=None, timeout=None: _FakeResponse(400, text='{"error":"invalid_grant"}'),
    )

    with pytest.raises(SpotifyAuthError, match="invalid_grant"):
        refresh_access_token("cid", "secret", "stale")
