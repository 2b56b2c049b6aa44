from __future__ import annotations

import re

from importers.base import (
    ParsedReference,
    PlaylistScraper,
    decode_json_string,
    extract_og_title_reference,
    load_embedded_json,
)

_HYDRATION_RE = re.compile(r"window\.__sc_hydration\s*=\s*(\[.*?\]);\s*</script>", re.DOTALL)
_TRACKS_BLOCK_RE = re.compile(r'"tracks"\s*:\s*\[(.*?)\]\s*,\s*"track_count"', re.DOTALL)
_TRACK_TITLE_RE = re.compile(r'"title"\s*:\s*"((?:[^"\\]|\\.)+)"')


def extract_hydration(html_text: str) -> list[ParsedReference]:
    payload = load_embedded_json(html_text, _HYDRATION_RE)
    if not isinstance(payload, list):
        return []
    references: list[ParsedReference] = []
    for entry in payload:
        if not isinstance(entry, dict) or entry.get("hydratable") != "playlist":
            continue
        tracks = (entry.get("data") or {}).get("tracks") or []
        for track in tracks:
            if not isinstance(track, dict) or not track.get("title"):
                continue
            user = track.get("user") or {}
            references.append(ParsedReference(title=str(track["title"]), artist=user.get("username")))
    return references


def extract_tracks_block(html_text: str) -> list[ParsedReference]:
    match = _TRACKS_BLOCK_RE.search(html_text)
    if not match:
        return []
    return [
        ParsedReference(title=decode_json_string(title.group(1)))
        for title in _TRACK_TITLE_RE.finditer(match.group(1))
    ]


class SoundCloudScraper(PlaylistScraper):
    platform = "soundcloud"

    def page_urls(self, playlist) -> list[str]:
        return [playlist.url]

    def extractors(self):
        return [extract_hydration, extract_tracks_block, extract_og_title_reference]
