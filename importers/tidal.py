from __future__ import annotations

import re
from urllib.parse import quote

from importers.base import ParsedReference, PlaylistScraper, decode_json_string, iter_dicts, load_embedded_json

_NEXT_DATA_RE = re.compile(r'<script[^>]+id="__NEXT_DATA__"[^>]*>(.*?)</script>', re.DOTALL | re.IGNORECASE)
_TITLE_ARTIST_RE = re.compile(
    r'"title"\s*:\s*"((?:[^"\\]|\\.)+)"\s*,\s*"artist"\s*:\s*(?:\{\s*"name"\s*:\s*)?"((?:[^"\\]|\\.)+)"'
)


def _first_artist(node: dict) -> str | None:
    artists = node.get("artists")
    if isinstance(artists, list) and artists and isinstance(artists[0], dict):
        return artists[0].get("name")
    artist = node.get("artist")
    if isinstance(artist, dict):
        return artist.get("name")
    return artist if isinstance(artist, str) else None


def extract_next_data(html_text: str) -> list[ParsedReference]:
    payload = load_embedded_json(html_text, _NEXT_DATA_RE)
    if payload is None:
        return []
    references: list[ParsedReference] = []
    for node in iter_dicts(payload):
        title = node.get("title")
        if not isinstance(title, str) or "duration" not in node:
            continue
        references.append(ParsedReference(title=title, artist=_first_artist(node)))
    return references


def extract_title_artist_pairs(html_text: str) -> list[ParsedReference]:
    return [
        ParsedReference(title=decode_json_string(match.group(1)), artist=decode_json_string(match.group(2)))
        for match in _TITLE_ARTIST_RE.finditer(html_text)
    ]


class TidalScraper(PlaylistScraper):
    platform = "tidal"

    def page_urls(self, playlist) -> list[str]:
        return [f"https://tidal.com/browse/playlist/{quote(playlist.playlist_id, safe='-')}"]

    def extractors(self):
        return [extract_next_data, extract_title_artist_pairs]
