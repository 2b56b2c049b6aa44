"""Spotify OAuth client helpers."""

from __future__ import annotations

import secrets
from urllib.parse import urlencode

import requests

from config.settings import SPOTIFY_TIMEOUT_SECONDS

SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"


class SpotifyAuthError(RuntimeError):
    pass


def generate_state() -> str:
    return secrets.token_hex(16)


def build_auth_url(client_id: str, redirect_uri: str, scope: str, state: str, *, show_dialog: bool = False) -> str:
    """Build Spotify authorization URL."""
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": scope,
        "state": state,
    }
    if show_dialog:
        params["show_dialog"] = "true"
    return f"{SPOTIFY_AUTH_URL}?{urlencode(params)}"


def _post_token(data: dict[str, str], failure: str) -> dict:
    response = requests.post(SPOTIFY_TOKEN_URL, data=data, timeout=SPOTIFY_TIMEOUT_SECONDS)
    if response.status_code != 200:
        detail = (response.text or "").strip() or f"status={response.status_code}"
        raise SpotifyAuthError(f"{failure}: {detail}")
    return response.json()


def exchange_code_for_tokens(
    client_id: str,
    client_secret: str,
    code: str,
    redirect_uri: str,
) -> dict:
    """Trade an authorization code for access and refresh tokens.

    Raises:
        SpotifyAuthError: When the token endpoint answers with a non-200 status.
    """
    return _post_token(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "client_secret": client_secret,
        },
        "spotify code exchange failed",
    )


def refresh_access_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
) -> dict:
    """Exchange refresh token for a new Spotify access token payload.

    Returns:
        Parsed JSON token response from Spotify.

    Raises:
        SpotifyAuthError: When request fails or response code is non-200.
    """
    return _post_token(
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
        },
        "spotify refresh failed",
    )
