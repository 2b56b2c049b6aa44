"""Request input checks; each helper returns the cleaned value or raises a 400."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException

from config.settings import MAX_SEARCH_QUERY_LENGTH, SPOTIFY_ID_PATTERN, SPOTIFY_TRACK_URI_PATTERN
from input.url_parser import parse_http_url


def validate_search_query(query: str | None) -> str:
    if query is None or query == "":
        raise HTTPException(status_code=400, detail="Missing query parameter")
    if len(query) > MAX_SEARCH_QUERY_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Query too long (max {MAX_SEARCH_QUERY_LENGTH} characters)",
        )
    if not query.strip():
        raise HTTPException(status_code=400, detail="Query cannot be empty")
    return query


def _validate_spotify_id(value: str | None, label: str) -> str:
    if not value:
        raise HTTPException(status_code=400, detail=f"Missing {label}")
    if not SPOTIFY_ID_PATTERN.match(value):
        raise HTTPException(status_code=400, detail=f"Invalid {label} format")
    return value


def validate_track_id(track_id: str | None) -> str:
    return _validate_spotify_id(track_id, "track ID")


def validate_playlist_id(playlist_id: str | None) -> str:
    return _validate_spotify_id(playlist_id, "playlist ID")


def validate_track_uri(uri: str | None) -> str:
    if not uri:
        raise HTTPException(status_code=400, detail="Missing track URI")
    if not SPOTIFY_TRACK_URI_PATTERN.match(uri):
        raise HTTPException(status_code=400, detail="Invalid track URI format")
    return uri


def validate_url(url: str | None) -> str:
    if not url:
        raise HTTPException(status_code=400, detail="Missing URL")
    text = url.strip()
    if "://" in text and not text.lower().startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="Invalid URL protocol")
    if parse_http_url(text) is None:
        raise HTTPException(status_code=400, detail="Invalid URL format")
    return text


def validate_required_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise HTTPException(status_code=400, detail=f"Missing or invalid {field_name}")
    return value.strip()
