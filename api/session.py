"""Cookie-backed Spotify session handling."""

from __future__ import annotations

import logging

import requests
from fastapi import HTTPException, Request, Response

from config.settings import (
    ACCESS_TOKEN_COOKIE,
    AUTH_STATE_COOKIE,
    REFRESH_TOKEN_COOKIE,
    REFRESH_TOKEN_MAX_AGE,
    Settings,
)
from spotify.oauth_client import SpotifyAuthError, refresh_access_token

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_ERROR = "Not authenticated"
SESSION_EXPIRED_ERROR = "Session expired. Please log in again."


def set_session_cookie(response: Response, name: str, value: str, max_age: int, settings: Settings) -> None:
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


def clear_session_cookie(response: Response, name: str, settings: Settings) -> None:
    response.delete_cookie(name, path="/", httponly=True, samesite="lax", secure=settings.secure_cookies)


def store_tokens(response: Response, tokens: dict, settings: Settings) -> None:
    """Write the access token, and the refresh token when one was issued."""
    set_session_cookie(
        response,
        ACCESS_TOKEN_COOKIE,
        str(tokens["access_token"]),
        int(tokens.get("expires_in") or 3600),
        settings,
    )
    if tokens.get("refresh_token"):
        set_session_cookie(response, REFRESH_TOKEN_COOKIE, str(tokens["refresh_token"]), REFRESH_TOKEN_MAX_AGE, settings)


def clear_tokens(response: Response, settings: Settings) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, AUTH_STATE_COOKIE):
        clear_session_cookie(response, name, settings)


def resolve_access_token(request: Request, response: Response, settings: Settings) -> str:
    """Return a usable access token, refreshing it from the refresh cookie if needed.

    Raises:
        HTTPException: 401 when no tokens are present or the refresh fails.
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token

    refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not refresh_token:
        raise HTTPException(status_code=401, detail=NOT_AUTHENTICATED_ERROR)

    if not settings.spotify_client_id or not settings.spotify_client_secret:
        logging.error("Spotify client credentials are not configured; cannot refresh session")
        raise HTTPException(status_code=401, detail=SESSION_EXPIRED_ERROR)

    try:
        tokens = refresh_access_token(settings.spotify_client_id, settings.spotify_client_secret, refresh_token)
    except (SpotifyAuthError, requests.RequestException, ValueError) as exc:
        logger.warning("spotify token refresh failed: %s", exc)
        raise HTTPException(status_code=401, detail=SESSION_EXPIRED_ERROR) from exc

    if not tokens.get("access_token"):
        raise HTTPException(status_code=401, detail=SESSION_EXPIRED_ERROR)
    store_tokens(response, tokens, settings)
    return str(tokens["access_token"])
