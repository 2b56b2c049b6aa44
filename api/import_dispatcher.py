"""Import execution dispatcher for the ``/api/import*`` routes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

import requests
from fastapi import HTTPException

from api.validators import validate_search_query, validate_url
from config.settings import LOW_RESULT_THRESHOLD, MAX_IMPORT_TRACKS
from engine.query_normalization import query_needs_cleaning, suggest_alternatives
from engine.reconciler import (
    ReconciledTrack,
    catalog_search,
    reconcile,
    spotify_playlist_tracks,
    summarize,
)
from importers.dispatcher import scrape_playlist
from importers.page_title import fetch_page_title, fetch_youtube_title
from input.intent_router import IntentType, detect_intent
from input.playlist_url_parser import ParsedPlaylistUrl, get_supported_playlist_platforms, parse_playlist_url, platform_label
from input.text_tracks import looks_like_track_list, parse_track_list
from input.url_parser import PlatformMatch, classify
from spotify.client import SpotifyAPIError

logger = logging.getLogger(__name__)

TEXT_PLATFORM = "text"
TEXT_PLAYLIST_NAME = "Text Import"

MISSING_INPUT_ERROR = "Missing input. Provide a playlist URL or paste a list of tracks."
UNPARSEABLE_TEXT_ERROR = 'Could not parse track list. Try format: "Artist - Title" (one per line)'
EMPTY_SCRAPE_ERROR = "Could not extract tracks from this playlist. The playlist may be private or empty."
SPOTIFY_PLAYLIST_ERROR = "Could not read this Spotify playlist. The playlist may be private or empty."
UNSUPPORTED_TRACK_URL_ERROR = "Unsupported URL format. Supported: YouTube, Spotify, SoundCloud, and most music sites."


def _unsupported_playlist_error() -> str:
    labels = ", ".join(platform_label(platform) for platform in get_supported_playlist_platforms())
    return f"Not a valid playlist URL. Supported: {labels}. Or paste a list of tracks (one per line)."


async def annotate_liked(spotify, tracks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Copy ``tracks`` adding ``isLiked`` from one bulk saved-tracks lookup.

    A failed lookup marks every track as not liked instead of failing the
    import; an expired session still propagates.
    """
    if not tracks:
        return []
    try:
        flags = await spotify.check_saved_tracks([str(track.get("id") or "") for track in tracks])
    except SpotifyAPIError as exc:
        if exc.status_code == 401:
            raise
        logger.warning("liked lookup failed status=%s: %s", exc.status_code, exc)
        flags = []
    except requests.RequestException as exc:
        logger.warning("liked lookup failed: %s", exc)
        flags = []
    return [
        {**track, "isLiked": bool(flags[index]) if index < len(flags) else False}
        for index, track in enumerate(tracks)
    ]


async def _annotate_reconciled(spotify, reconciled: list[ReconciledTrack]) -> list[dict[str, Any]]:
    found = [entry for entry in reconciled if entry.spotify_track is not None]
    annotated = await annotate_liked(spotify, [entry.spotify_track for entry in found])
    for entry, track in zip(found, annotated):
        entry.spotify_track = track
    return [entry.to_dict() for entry in reconciled]


async def _multi_track_response(
    spotify,
    reconciled: list[ReconciledTrack],
    *,
    platform: str,
    playlist_name: str,
) -> Dict[str, Any]:
    summary = summarize(reconciled)
    logger.info(
        "import complete platform=%s total=%d found=%d not_found=%d",
        platform,
        summary.total,
        summary.found,
        summary.not_found,
    )
    return {
        "platform": platform,
        "playlistName": playlist_name,
        "tracks": await _annotate_reconciled(spotify, reconciled),
        "summary": summary.to_dict(),
    }


async def import_text_list(raw: str, spotify) -> Dict[str, Any]:
    refs = parse_track_list(raw)
    if not refs:
        raise HTTPException(status_code=400, detail=UNPARSEABLE_TEXT_ERROR)
    reconciled = await reconcile(refs[:MAX_IMPORT_TRACKS], catalog_search(spotify))
    return await _multi_track_response(spotify, reconciled, platform=TEXT_PLATFORM, playlist_name=TEXT_PLAYLIST_NAME)


async def import_playlist(parsed: ParsedPlaylistUrl, spotify) -> Dict[str, Any]:
    if parsed.platform == "spotify":
        try:
            reconciled = await spotify_playlist_tracks(spotify, parsed.playlist_id)
        except SpotifyAPIError as exc:
            if exc.status_code in {401, 429}:
                raise
            logger.info("spotify playlist unreadable id=%s status=%s", parsed.playlist_id, exc.status_code)
            raise HTTPException(status_code=400, detail=SPOTIFY_PLAYLIST_ERROR) from exc
        return await _multi_track_response(
            spotify,
            reconciled,
            platform=parsed.platform,
            playlist_name=f"{platform_label(parsed.platform)} Playlist",
        )

    scraped = await asyncio.to_thread(scrape_playlist, parsed)
    if not scraped.tracks:
        logger.info("scrape found nothing platform=%s url=%s", parsed.platform, parsed.url)
        raise HTTPException(status_code=400, detail=EMPTY_SCRAPE_ERROR)
    reconciled = await reconcile(scraped.tracks[:MAX_IMPORT_TRACKS], catalog_search(spotify))
    return await _multi_track_response(
        spotify,
        reconciled,
        platform=parsed.platform,
        playlist_name=scraped.playlist_name or f"{platform_label(parsed.platform)} Playlist",
    )


async def import_playlist_input(raw: str, spotify) -> Dict[str, Any]:
    """Text-list or playlist-URL import; anything else is a 400."""
    text = str(raw or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail=MISSING_INPUT_ERROR)
    if looks_like_track_list(text):
        return await import_text_list(text, spotify)
    parsed = parse_playlist_url(text)
    if parsed is None:
        raise HTTPException(status_code=400, detail=_unsupported_playlist_error())
    return await import_playlist(parsed, spotify)


async def _search_query_for(match: PlatformMatch) -> str:
    if match.platform == "youtube":
        title = await asyncio.to_thread(fetch_youtube_title, match.query)
        if not title:
            raise HTTPException(status_code=400, detail="Could not fetch video info")
        return title
    if match.platform == "soundcloud":
        return match.query
    title = await asyncio.to_thread(fetch_page_title, match.query)
    if not title:
        raise HTTPException(status_code=400, detail="Could not fetch page info from the music service")
    return title


async def import_track_url(match: PlatformMatch, spotify) -> Dict[str, Any]:
    if match.platform == "spotify":
        try:
            track = await spotify.get_track(match.query)
        except SpotifyAPIError as exc:
            if exc.status_code == 401:
                raise
            raise HTTPException(status_code=400, detail="Could not fetch Spotify track") from exc
        return {"tracks": await annotate_liked(spotify, [track]), "source": "spotify", "searchQuery": None}

    search_query = await _search_query_for(match)
    payload = await spotify.search_tracks(search_query, limit=10)
    items = list(((payload or {}).get("tracks") or {}).get("items") or [])
    return {
        "tracks": await annotate_liked(spotify, items),
        "source": match.platform,
        "searchQuery": search_query,
    }


async def import_single_url(raw: str, spotify) -> Dict[str, Any]:
    url = validate_url(raw)
    match = classify(url)
    if match is None:
        raise HTTPException(status_code=400, detail=UNSUPPORTED_TRACK_URL_ERROR)
    return await import_track_url(match, spotify)


async def search_with_suggestions(query: str, spotify, *, limit: int = 20) -> Dict[str, Any]:
    """Literal catalog search; noisy or thin results carry alternative queries."""
    payload = await spotify.search_tracks(query, limit=limit)
    tracks_page = (payload or {}).get("tracks") or {}
    items = list(tracks_page.get("items") or [])
    response: Dict[str, Any] = {
        "tracks": await annotate_liked(spotify, items),
        "total": int(tracks_page.get("total") or len(items)),
    }
    if len(items) < LOW_RESULT_THRESHOLD or query_needs_cleaning(query):
        suggestions = suggest_alternatives(query)
        if suggestions:
            response["suggestions"] = suggestions
    return response


async def execute_import(raw: str, spotify) -> Dict[str, Any]:
    """Route raw input to exactly one import path; no fallback across paths."""
    intent = detect_intent(raw)
    if not intent.identifier:
        raise HTTPException(status_code=400, detail=MISSING_INPUT_ERROR)
    logger.info("import intent=%s", intent.type.value)

    if intent.type == IntentType.TEXT_LIST:
        result = await import_text_list(intent.identifier, spotify)
    elif intent.type == IntentType.PLAYLIST:
        result = await import_playlist(intent.detail, spotify)
    elif intent.type == IntentType.TRACK_URL:
        result = await import_track_url(intent.detail, spotify)
    else:
        query = validate_search_query(intent.identifier)
        result = await search_with_suggestions(query, spotify, limit=10)
    return {"intent": intent.type.value, **result}
