"""Map candidate (title, artist) references onto catalog tracks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from config.settings import MAX_IMPORT_TRACKS, RECONCILE_CONCURRENCY
from importers.base import ParsedReference

logger = logging.getLogger(__name__)

FOUND = "found"
NOT_FOUND = "not_found"

SearchFn = Callable[[str], Awaitable[list[dict[str, Any]]]]


@dataclass
class ReconciledTrack:
    original_title: str
    original_artist: Optional[str]
    spotify_track: Optional[dict[str, Any]]
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalTitle": self.original_title,
            "originalArtist": self.original_artist,
            "spotifyTrack": self.spotify_track,
            "status": self.status,
        }


@dataclass(frozen=True)
class ImportSummary:
    total: int
    found: int
    not_found: int

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "found": self.found, "notFound": self.not_found}


def catalog_search(spotify) -> SearchFn:
    """Adapt a Spotify client into a single-best-match search function."""

    async def _search(query: str) -> list[dict[str, Any]]:
        payload = await spotify.search_tracks(query, limit=1)
        return list(((payload or {}).get("tracks") or {}).get("items") or [])

    return _search


async def _reconcile_one(
    ref: ParsedReference,
    search_fn: SearchFn,
    semaphore: asyncio.Semaphore,
) -> ReconciledTrack:
    query = ref.search_query()
    try:
        async with semaphore:
            items = await search_fn(query)
    except Exception as exc:
        logger.warning("reconcile search failed query=%r error=%s", query, exc)
        items = []
    track = items[0] if items else None
    return ReconciledTrack(
        original_title=ref.title,
        original_artist=ref.artist,
        spotify_track=track,
        status=FOUND if track else NOT_FOUND,
    )


async def reconcile(
    refs: list[ParsedReference],
    search_fn: SearchFn,
    *,
    concurrency: int = RECONCILE_CONCURRENCY,
) -> list[ReconciledTrack]:
    """Search once per reference, bounded by ``concurrency``; output order follows ``refs``.

    A failed or empty search yields a ``not_found`` entry rather than an error.
    """
    semaphore = asyncio.Semaphore(max(1, int(concurrency)))
    return list(await asyncio.gather(*(_reconcile_one(ref, search_fn, semaphore) for ref in refs)))


def summarize(tracks: list[ReconciledTrack]) -> ImportSummary:
    found = sum(1 for track in tracks if track.status == FOUND)
    return ImportSummary(total=len(tracks), found=found, not_found=len(tracks) - found)


async def spotify_playlist_tracks(spotify, playlist_id: str) -> list[ReconciledTrack]:
    """Read a Spotify playlist directly; every returned track counts as found."""
    payload = await spotify.get_playlist_tracks(playlist_id, MAX_IMPORT_TRACKS)
    tracks: list[ReconciledTrack] = []
    for item in payload.get("items") or []:
        track = item.get("track") if isinstance(item, dict) else None
        if not isinstance(track, dict) or not track.get("id"):
            continue
        artists = track.get("artists") or []
        first_artist = artists[0].get("name") if artists and isinstance(artists[0], dict) else None
        tracks.append(
            ReconciledTrack(
                original_title=str(track.get("name") or ""),
                original_artist=first_artist,
                spotify_track=track,
                status=FOUND,
            )
        )
        if len(tracks) >= MAX_IMPORT_TRACKS:
            break
    return tracks
