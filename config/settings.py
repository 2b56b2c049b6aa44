"""Application settings constants."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

APP_NAME = "spillover"
APP_VERSION = "1.0.0"

# Timeout for third-party page fetches, oEmbed and title lookups.
EXTERNAL_TIMEOUT_SECONDS = 5.0

# Timeout for every Spotify Web API call.
SPOTIFY_TIMEOUT_SECONDS = 10.0

# Upper bound on tracks pulled out of one text list or scraped playlist.
MAX_IMPORT_TRACKS = 50

# Simultaneous catalog searches issued by one reconcile call.
RECONCILE_CONCURRENCY = 8

# Plain searches returning fewer results than this get alternative queries.
LOW_RESULT_THRESHOLD = 3

MAX_SEARCH_QUERY_LENGTH = 200
MAX_BULK_LIKE_IDS = 100
MAX_DUPLICATE_CHECK_PLAYLISTS = 20
MAX_SEED_TRACKS = 2
MAX_SUGGESTIONS = 10

SPOTIFY_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]{22}$")
SPOTIFY_TRACK_URI_PATTERN = re.compile(r"^spotify:track:[a-zA-Z0-9]{22}$")

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

# (window seconds, max requests) per route key.
RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMITS = {
    "default": (RATE_LIMIT_WINDOW_SECONDS, 60),
    "search": (RATE_LIMIT_WINDOW_SECONDS, 60),
    "like": (RATE_LIMIT_WINDOW_SECONDS, 30),
    "playlist": (RATE_LIMIT_WINDOW_SECONDS, 30),
    "now_playing": (RATE_LIMIT_WINDOW_SECONDS, 120),
    "suggestions": (RATE_LIMIT_WINDOW_SECONDS, 30),
    "me": (RATE_LIMIT_WINDOW_SECONDS, 30),
    "import": (RATE_LIMIT_WINDOW_SECONDS, 30),
}

ACCESS_TOKEN_COOKIE = "spotify_access_token"
REFRESH_TOKEN_COOKIE = "spotify_refresh_token"
AUTH_STATE_COOKIE = "spotify_auth_state"
AUTH_STATE_MAX_AGE = 10 * 60
REFRESH_TOKEN_MAX_AGE = 60 * 60 * 24 * 30

OAUTH_SCOPES = " ".join(
    [
        "user-library-read",
        "user-library-modify",
        "playlist-read-private",
        "playlist-modify-public",
        "playlist-modify-private",
        "user-read-playback-state",
        "user-modify-playback-state",
        "user-read-currently-playing",
    ]
)


@dataclass(frozen=True)
class Settings:
    spotify_client_id: str | None
    spotify_client_secret: str | None
    spotify_redirect_uri: str | None
    log_level: str = "INFO"
    secure_cookies: bool = False
    trust_proxy: bool = False
    host: str = "127.0.0.1"
    port: int = 8000


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Read runtime settings from the process environment."""
    return Settings(
        spotify_client_id=os.environ.get("SPOTIFY_CLIENT_ID") or None,
        spotify_client_secret=os.environ.get("SPOTIFY_CLIENT_SECRET") or None,
        spotify_redirect_uri=os.environ.get("SPOTIFY_REDIRECT_URI") or None,
        log_level=(os.environ.get("LOG_LEVEL") or "INFO").strip().upper(),
        secure_cookies=_env_flag("SPILLOVER_SECURE_COOKIES"),
        trust_proxy=_env_flag("SPILLOVER_TRUST_PROXY"),
        host=os.environ.get("SPILLOVER_HOST") or "127.0.0.1",
        port=int(os.environ.get("SPILLOVER_PORT") or 8000),
    )
