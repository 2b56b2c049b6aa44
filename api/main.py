#!/usr/bin/env python3
import asyncio
import logging
import time
from typing import Any, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from api.import_dispatcher import (
    annotate_liked,
    execute_import,
    import_playlist_input,
    import_single_url,
    search_with_suggestions,
)
from api.rate_limit import rate_limited
from api.session import clear_tokens, resolve_access_token, set_session_cookie, store_tokens
from api.validators import (
    validate_playlist_id,
    validate_required_string,
    validate_search_query,
    validate_track_id,
    validate_track_uri,
)
from config.settings import (
    APP_NAME,
    APP_VERSION,
    AUTH_STATE_COOKIE,
    AUTH_STATE_MAX_AGE,
    MAX_BULK_LIKE_IDS,
    MAX_DUPLICATE_CHECK_PLAYLISTS,
    MAX_SEED_TRACKS,
    MAX_SUGGESTIONS,
    OAUTH_SCOPES,
    SPOTIFY_ID_PATTERN,
    load_settings,
)
from spotify.client import SpotifyAPIError, SpotifyClient
from spotify.oauth_client import SpotifyAuthError, build_auth_url, exchange_code_for_tokens, generate_state

SETTINGS = load_settings()
NO_ACTIVE_SESSION_ERROR = "No active Spotify session. Open Spotify and start playing something first."
CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "script-src 'self' 'unsafe-inline'",
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
        "font-src 'self' https://fonts.gstatic.com",
        "img-src 'self' https://i.scdn.co https://*.spotifycdn.com https://i.ytimg.com data: blob:",
        "connect-src 'self' https://api.spotify.com https://accounts.spotify.com",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    ]
)

logger = logging.getLogger(__name__)


def _setup_logging(level_name):
    root = logging.getLogger("")
    root.setLevel(getattr(logging, str(level_name or "INFO").upper(), logging.INFO))
    has_stream = any(isinstance(handler, logging.StreamHandler) for handler in root.handlers)
    if not has_stream:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(stream_handler)


_setup_logging(SETTINGS.log_level)

# Indirection so tests can swap in a fake client.
_spotify_client_factory = SpotifyClient


class ImportPlaylistRequest(BaseModel):
    url: Optional[str] = None


class ImportUrlRequest(BaseModel):
    url: Optional[str] = None


class ImportRequest(BaseModel):
    input: Optional[str] = None


class TrackIdRequest(BaseModel):
    trackId: Optional[str] = None


class BulkLikeRequest(BaseModel):
    trackIds: Any = None


class PlaylistAddRequest(BaseModel):
    playlistId: Optional[str] = None
    trackUri: Optional[str] = None


class DuplicateCheckRequest(BaseModel):
    trackId: Any = None
    playlistIds: Any = None


class TrackUriRequest(BaseModel):
    trackUri: Any = None


app = FastAPI(
    title=APP_NAME,
    description="Spillover API for Spotify search, library actions and cross-platform imports.",
    version=APP_VERSION,
)

app.state.trust_proxy = SETTINGS.trust_proxy
if SETTINGS.trust_proxy:
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
    response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
    if SETTINGS.secure_cookies:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    request_id = uuid4().hex[:8]
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (time.perf_counter() - started) * 1000
        logger.error(
            "%s %s status=500 duration_ms=%.1f request_id=%s",
            request.method,
            request.url.path,
            duration_ms,
            request_id,
        )
        raise
    duration_ms = (time.perf_counter() - started) * 1000
    log = logger.warning if response.status_code >= 400 else logger.info
    log(
        "%s %s status=%s duration_ms=%.1f request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        request_id,
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "Invalid JSON body"}, status_code=400)


@app.exception_handler(SpotifyAPIError)
async def spotify_exception_handler(request: Request, exc: SpotifyAPIError):
    if exc.status_code in {401, 429}:
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)
    logging.exception("Spotify call failed for %s %s", request.method, request.url.path)
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logging.exception("Unhandled error for %s %s", request.method, request.url.path)
    return JSONResponse({"error": str(exc) or "Internal server error"}, status_code=500)


def get_spotify(request: Request, response: Response) -> SpotifyClient:
    token = resolve_access_token(request, response, SETTINGS)
    return _spotify_client_factory(token)


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=302)


@app.get("/api/health")
async def api_health():
    return {"status": "ok", "app": APP_NAME, "version": APP_VERSION}


@app.get("/api/auth/login")
async def api_auth_login():
    if not SETTINGS.spotify_client_id or not SETTINGS.spotify_redirect_uri:
        raise HTTPException(status_code=500, detail="Spotify OAuth is not configured")
    state = generate_state()
    auth_url = build_auth_url(
        SETTINGS.spotify_client_id,
        SETTINGS.spotify_redirect_uri,
        OAUTH_SCOPES,
        state,
        show_dialog=True,
    )
    response = _redirect(auth_url)
    set_session_cookie(response, AUTH_STATE_COOKIE, state, AUTH_STATE_MAX_AGE, SETTINGS)
    return response


@app.get("/api/auth/callback")
async def api_auth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
):
    if error:
        return _redirect(f"/?error={error}")
    stored_state = request.cookies.get(AUTH_STATE_COOKIE)
    if not state or state != stored_state:
        return _redirect("/?error=state_mismatch")
    if not code:
        return _redirect("/?error=no_code")
    try:
        tokens = await asyncio.to_thread(
            exchange_code_for_tokens,
            SETTINGS.spotify_client_id or "",
            SETTINGS.spotify_client_secret or "",
            code,
            SETTINGS.spotify_redirect_uri or "",
        )
    except (SpotifyAuthError, OSError, ValueError) as exc:
        logging.error("Spotify token exchange failed: %s", exc)
        return _redirect("/?error=token_exchange_failed")
    response = _redirect("/")
    store_tokens(response, tokens, SETTINGS)
    response.delete_cookie(AUTH_STATE_COOKIE, path="/")
    logging.info("Spotify session established")
    return response


@app.get("/api/auth/logout")
async def api_auth_logout():
    response = _redirect("/")
    clear_tokens(response, SETTINGS)
    return response


@app.get("/api/me", dependencies=[Depends(rate_limited("me"))])
async def api_me(spotify: SpotifyClient = Depends(get_spotify)):
    return await spotify.get_current_user()


@app.get("/api/search", dependencies=[Depends(rate_limited("search"))])
async def api_search(q: Optional[str] = Query(None), spotify: SpotifyClient = Depends(get_spotify)):
    query = validate_search_query(q)
    return await search_with_suggestions(query, spotify)


@app.get("/api/suggestions", dependencies=[Depends(rate_limited("suggestions"))])
async def api_suggestions(seeds: Optional[str] = Query(None), spotify: SpotifyClient = Depends(get_spotify)):
    track_ids = [seed for seed in (seeds or "").split(",") if seed]
    if not track_ids:
        raise HTTPException(status_code=400, detail="Missing seed track IDs")
    if not all(SPOTIFY_ID_PATTERN.match(track_id) for track_id in track_ids):
        raise HTTPException(status_code=400, detail="Invalid track ID format")

    seed_tracks = await asyncio.gather(
        *(spotify.get_track(track_id) for track_id in track_ids[:MAX_SEED_TRACKS]),
        return_exceptions=True,
    )
    valid_tracks = [track for track in seed_tracks if isinstance(track, dict) and track]
    if not valid_tracks:
        return {"tracks": []}

    artist_ids: list[str] = []
    for track in valid_tracks:
        for artist in track.get("artists") or []:
            artist_id = artist.get("id")
            if artist_id and artist_id not in artist_ids:
                artist_ids.append(artist_id)
    if not artist_ids:
        return {"tracks": []}

    top_tracks, related = await asyncio.gather(
        spotify.get_artist_top_tracks(artist_ids[0]),
        spotify.get_related_artists(artist_ids[0]),
        return_exceptions=True,
    )
    if isinstance(top_tracks, BaseException):
        raise top_tracks
    suggested = list(top_tracks.get("tracks") or [])
    related_artists = [] if isinstance(related, BaseException) else list(related.get("artists") or [])
    if related_artists:
        try:
            related_top = await spotify.get_artist_top_tracks(related_artists[0]["id"])
            suggested.extend(related_top.get("tracks") or [])
        except (SpotifyAPIError, KeyError) as exc:
            logger.debug("related artist top tracks skipped: %s", exc)

    seed_ids = set(track_ids)
    seen: set[str] = set()
    unique: list[dict] = []
    for track in suggested:
        track_id = track.get("id")
        if not track_id or track_id in seed_ids or track_id in seen:
            continue
        seen.add(track_id)
        unique.append(track)
    return {"tracks": await annotate_liked(spotify, unique[:MAX_SUGGESTIONS])}


@app.post("/api/like", dependencies=[Depends(rate_limited("like"))])
async def api_like(payload: TrackIdRequest, spotify: SpotifyClient = Depends(get_spotify)):
    track_id = validate_track_id(payload.trackId)
    await spotify.save_tracks([track_id])
    return {"success": True, "liked": True}


@app.delete("/api/like", dependencies=[Depends(rate_limited("like"))])
async def api_unlike(payload: TrackIdRequest, spotify: SpotifyClient = Depends(get_spotify)):
    track_id = validate_track_id(payload.trackId)
    await spotify.remove_tracks([track_id])
    return {"success": True, "liked": False}


@app.post("/api/like/bulk", dependencies=[Depends(rate_limited("like"))])
async def api_like_bulk(payload: BulkLikeRequest, spotify: SpotifyClient = Depends(get_spotify)):
    track_ids = payload.trackIds
    if not isinstance(track_ids, list):
        raise HTTPException(status_code=400, detail="Missing or invalid trackIds array")
    if not track_ids:
        raise HTTPException(status_code=400, detail="No tracks provided")
    if len(track_ids) > MAX_BULK_LIKE_IDS:
        raise HTTPException(status_code=400, detail=f"Maximum {MAX_BULK_LIKE_IDS} tracks per request")
    invalid = [track_id for track_id in track_ids if not isinstance(track_id, str) or not SPOTIFY_ID_PATTERN.match(track_id)]
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid track ID format: {invalid[0]}")
    await spotify.save_tracks(track_ids)
    return {"success": True, "liked": len(track_ids)}


@app.get("/api/playlists", dependencies=[Depends(rate_limited("playlist"))])
async def api_playlists(spotify: SpotifyClient = Depends(get_spotify)):
    payload = await spotify.get_playlists()
    return {"playlists": payload.get("items") or [], "total": payload.get("total") or 0}


@app.post("/api/playlist/add", dependencies=[Depends(rate_limited("playlist"))])
async def api_playlist_add(payload: PlaylistAddRequest, spotify: SpotifyClient = Depends(get_spotify)):
    playlist_id = validate_playlist_id(payload.playlistId)
    track_uri = validate_track_uri(payload.trackUri)
    await spotify.add_to_playlist(playlist_id, track_uri)
    return {"success": True}


@app.post("/api/playlist/check-duplicates", dependencies=[Depends(rate_limited("playlist"))])
async def api_playlist_check_duplicates(payload: DuplicateCheckRequest, spotify: SpotifyClient = Depends(get_spotify)):
    track_id = validate_required_string(payload.trackId, "trackId")
    playlist_ids = payload.playlistIds
    if not isinstance(playlist_ids, list) or not playlist_ids:
        raise HTTPException(status_code=400, detail="Missing or invalid playlistIds")
    to_check = [str(playlist_id) for playlist_id in playlist_ids[:MAX_DUPLICATE_CHECK_PLAYLISTS]]

    async def _check(playlist_id: str) -> bool:
        try:
            return await spotify.is_track_in_playlist(playlist_id, track_id)
        except Exception as exc:
            logger.debug("duplicate check skipped playlist=%s error=%s", playlist_id, exc)
            return False

    results = await asyncio.gather(*(_check(playlist_id) for playlist_id in to_check))
    return {"duplicates": dict(zip(to_check, results))}


@app.get("/api/now-playing", dependencies=[Depends(rate_limited("now_playing"))])
async def api_now_playing(spotify: SpotifyClient = Depends(get_spotify)):
    now_playing = await spotify.get_currently_playing()
    item = (now_playing or {}).get("item")
    if not now_playing or not item or now_playing.get("currently_playing_type") != "track":
        return {"playing": False}
    annotated = await annotate_liked(spotify, [item])
    return {
        "playing": True,
        "is_playing": bool(now_playing.get("is_playing")),
        "progress_ms": now_playing.get("progress_ms"),
        "track": annotated[0],
    }


async def _require_active_device(spotify: SpotifyClient) -> dict:
    state = await spotify.get_playback_state()
    device = (state or {}).get("device")
    if not device:
        raise HTTPException(status_code=400, detail=NO_ACTIVE_SESSION_ERROR)
    return device


def _player_track_uri(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise HTTPException(status_code=400, detail="Missing or invalid trackUri")
    if not value.startswith("spotify:track:"):
        raise HTTPException(status_code=400, detail="Invalid track URI format. Expected spotify:track:xxx")
    return value


@app.post("/api/player/play", dependencies=[Depends(rate_limited("playlist"))])
async def api_player_play(payload: TrackUriRequest, spotify: SpotifyClient = Depends(get_spotify)):
    track_uri = _player_track_uri(payload.trackUri)
    device = await _require_active_device(spotify)
    await spotify.play_track(track_uri, device.get("id"))
    return {"success": True, "message": "Now playing", "device": device.get("name")}


@app.post("/api/player/queue", dependencies=[Depends(rate_limited("playlist"))])
async def api_player_queue(payload: TrackUriRequest, spotify: SpotifyClient = Depends(get_spotify)):
    track_uri = _player_track_uri(payload.trackUri)
    device = await _require_active_device(spotify)
    await spotify.add_to_queue(track_uri)
    return {"success": True, "message": "Track added to queue", "device": device.get("name")}


@app.get("/api/player/state", dependencies=[Depends(rate_limited("now_playing"))])
async def api_player_state(spotify: SpotifyClient = Depends(get_spotify)):
    state = await spotify.get_playback_state()
    device = (state or {}).get("device")
    return {
        "hasActiveSession": state is not None and device is not None,
        "isPlaying": bool((state or {}).get("is_playing")),
        "device": device,
        "track": (state or {}).get("item"),
    }


@app.post("/api/import-url", dependencies=[Depends(rate_limited("import"))])
async def api_import_url(payload: ImportUrlRequest, spotify: SpotifyClient = Depends(get_spotify)):
    return await import_single_url(payload.url or "", spotify)


@app.post("/api/import-playlist", dependencies=[Depends(rate_limited("import"))])
async def api_import_playlist(payload: ImportPlaylistRequest, spotify: SpotifyClient = Depends(get_spotify)):
    return await import_playlist_input(payload.url or "", spotify)


@app.post("/api/import", dependencies=[Depends(rate_limited("import"))])
async def api_import(payload: ImportRequest, spotify: SpotifyClient = Depends(get_spotify)):
    return await execute_import(payload.input or "", spotify)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=SETTINGS.host, port=SETTINGS.port, reload=False)
