"""Spotify Web API client for search, library, playlist and player calls."""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Any

import requests

from config.settings import SPOTIFY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE = "https://api.spotify.com/v1"
_IDS_PER_REQUEST = 50
_PLAYLIST_PAGE_LIMIT = 100


class SpotifyAPIError(RuntimeError):
    """A Spotify call that returned a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


def _chunks(values: list[str], size: int = _IDS_PER_REQUEST) -> list[list[str]]:
    return [values[index : index + size] for index in range(0, len(values), size)]


def _quote(value: str) -> str:
    return urllib.parse.quote(str(value or "").strip(), safe="")


class SpotifyClient:
    """Per-request client bound to one user's OAuth access token."""

    def __init__(self, access_token: str, *, timeout_sec: float = SPOTIFY_TIMEOUT_SECONDS) -> None:
        token = (access_token or "").strip()
        if not token:
            raise ValueError("access_token is required")
        self.access_token = token
        self.timeout_sec = timeout_sec

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> requests.Response:
        url = path if path.startswith("http") else f"{SPOTIFY_API_BASE}{path}"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if json_body is not None:
            headers["Content-Type"] = "application/json"
        return requests.request(
            method,
            url,
            params=params,
            json=json_body,
            headers=headers,
            timeout=self.timeout_sec,
        )

    @staticmethod
    def _parse_response(response: requests.Response) -> Any:
        text = response.text or ""
        if response.status_code >= 400:
            message = f"Spotify API error: {response.status_code}"
            if text:
                try:
                    message = response.json().get("error", {}).get("message") or message
                except (ValueError, AttributeError):
                    message = f"Spotify API error: {response.status_code} {response.reason or ''}".strip()
            raise SpotifyAPIError(response.status_code, message)
        if response.status_code == 204 or not text.strip():
            return {}
        return response.json()

    def _request_json(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Blocking single attempt; use the async methods from request handlers."""
        return self._parse_response(self._send(method, path, params, json_body))

    async def search_tracks(self, query: str, limit: int = 20) -> dict[str, Any]:
        return await _request_json_with_retry(
            self,
            "GET",
            "/search",
            params={"q": query, "type": "track", "limit": int(limit)},
        )

    async def get_track(self, track_id: str) -> dict[str, Any]:
        return await _request_json_with_retry(self, "GET", f"/tracks/{_quote(track_id)}")

    async def check_saved_tracks(self, track_ids: list[str]) -> list[bool]:
        """Liked flags aligned with ``track_ids``; queried 50 ids per call.

        Empty ids keep their slot and are reported as not liked.
        """
        flags = [False] * len(track_ids)
        positions = [index for index, track_id in enumerate(track_ids) if track_id]
        if not positions:
            return flags
        ids = [str(track_ids[index]) for index in positions]
        pages = await asyncio.gather(
            *(
                _request_json_with_retry(self, "GET", "/me/tracks/contains", params={"ids": ",".join(chunk)})
                for chunk in _chunks(ids)
            )
        )
        answers: list[bool] = []
        for page in pages:
            answers.extend(bool(flag) for flag in (page if isinstance(page, list) else []))
        for index, answer in zip(positions, answers):
            flags[index] = answer
        return flags

    async def save_tracks(self, track_ids: list[str]) -> None:
        await asyncio.gather(
            *(
                _request_json_with_retry(self, "PUT", "/me/tracks", json_body={"ids": chunk})
                for chunk in _chunks(list(track_ids))
            )
        )

    async def remove_tracks(self, track_ids: list[str]) -> None:
        await asyncio.gather(
            *(
                _request_json_with_retry(self, "DELETE", "/me/tracks", json_body={"ids": chunk})
                for chunk in _chunks(list(track_ids))
            )
        )

    async def get_playlists(self, limit: int = 50) -> dict[str, Any]:
        return await _request_json_with_retry(self, "GET", "/me/playlists", params={"limit": int(limit)})

    async def add_to_playlist(self, playlist_id: str, track_uri: str) -> dict[str, Any]:
        return await _request_json_with_retry(
            self,
            "POST",
            f"/playlists/{_quote(playlist_id)}/tracks",
            json_body={"uris": [track_uri]},
        )

    async def get_playlist_tracks(
        self,
        playlist_id: str,
        limit: int = _PLAYLIST_PAGE_LIMIT,
        *,
        fields: str | None = None,
    ) -> dict[str, Any]:
        """Fetch the first page of a playlist's tracks (at most 100 items)."""
        params: dict[str, Any] = {"limit": min(int(limit), _PLAYLIST_PAGE_LIMIT)}
        if fields:
            params["fields"] = fields
        return await _request_json_with_retry(self, "GET", f"/playlists/{_quote(playlist_id)}/tracks", params=params)

    async def is_track_in_playlist(self, playlist_id: str, track_id: str) -> bool:
        # Only the first page is inspected; very large playlists may be missed.
        payload = await self.get_playlist_tracks(
            playlist_id,
            _PLAYLIST_PAGE_LIMIT,
            fields="items(track(id)),total,limit,offset,next",
        )
        for item in payload.get("items") or []:
            track = item.get("track") if isinstance(item, dict) else None
            if isinstance(track, dict) and track.get("id") == track_id:
                return True
        return False

    async def get_current_user(self) -> dict[str, Any]:
        return await _request_json_with_retry(self, "GET", "/me")

    async def get_currently_playing(self) -> dict[str, Any] | None:
        try:
            payload = await _request_json_with_retry(self, "GET", "/me/player/currently-playing")
        except (SpotifyAPIError, requests.RequestException) as exc:
            logger.debug("currently playing lookup failed: %s", exc)
            return None
        return payload or None

    async def get_playback_state(self) -> dict[str, Any] | None:
        try:
            payload = await _request_json_with_retry(self, "GET", "/me/player")
        except (SpotifyAPIError, requests.RequestException) as exc:
            logger.debug("playback state lookup failed: %s", exc)
            return None
        return payload or None

    async def add_to_queue(self, track_uri: str) -> None:
        await _request_json_with_retry(self, "POST", "/me/player/queue", params={"uri": track_uri})

    async def play_track(self, track_uri: str, device_id: str | None = None) -> None:
        params = {"device_id": device_id} if device_id else None
        await _request_json_with_retry(self, "PUT", "/me/player/play", params=params, json_body={"uris": [track_uri]})

    async def get_artist_top_tracks(self, artist_id: str, market: str = "US") -> dict[str, Any]:
        return await _request_json_with_retry(
            self,
            "GET",
            f"/artists/{_quote(artist_id)}/top-tracks",
            params={"market": market},
        )

    async def get_related_artists(self, artist_id: str) -> dict[str, Any]:
        return await _request_json_with_retry(self, "GET", f"/artists/{_quote(artist_id)}/related-artists")

    async def get_recommendations(
        self,
        *,
        seed_tracks: list[str] | None = None,
        seed_artists: list[str] | None = None,
        seed_genres: list[str] | None = None,
        limit: int = 20,
        market: str = "US",
    ) -> dict[str, Any]:
        """Track recommendations; each seed list is truncated to five values."""
        params: dict[str, Any] = {"limit": int(limit or 20), "market": market or "US"}
        if seed_tracks:
            params["seed_tracks"] = ",".join(seed_tracks[:5])
        if seed_artists:
            params["seed_artists"] = ",".join(seed_artists[:5])
        if seed_genres:
            params["seed_genres"] = ",".join(seed_genres[:5])
        return await _request_json_with_retry(self, "GET", "/recommendations", params=params)


async def _request_json_with_retry(
    spotify_client: SpotifyClient,
    method: str,
    path: str,
    params: dict[str, Any] | None = None,
    json_body: Any = None,
    *,
    max_rate_limit_retries: int = 3,
) -> Any:
    """Perform a Spotify request off the event loop and retry on HTTP 429 responses."""
    attempts = 0
    while True:
        attempts += 1
        response = await asyncio.to_thread(spotify_client._send, method, path, params, json_body)

        if response.status_code == 429:
            if attempts > max_rate_limit_retries + 1:
                raise SpotifyAPIError(429, "Spotify request failed (429: rate limit exceeded retries)")
            retry_after = response.headers.get("Retry-After", "1")
            try:
                sleep_sec = float(retry_after)
            except (TypeError, ValueError):
                sleep_sec = 1.0
            logger.warning("spotify rate limited method=%s path=%s retry_after=%s", method, path, sleep_sec)
            await asyncio.sleep(max(0.0, sleep_sec))
            continue

        return spotify_client._parse_response(response)
