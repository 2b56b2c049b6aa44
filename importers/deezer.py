from __future__ import annotations

import re
from urllib.parse import quote

from importers.base import ParsedReference, PlaylistScraper, decode_json_string, load_embedded_json

_APP_STATE_RE = re.compile(r"window\.__DZR_APP_STATE__\s*=\s*(\{.*?\})\s*</script>", re.DOTALL)
_SONG_PAIR_RE = re.compile(
    r'"SNG_TITLE"\s*:\s*"((?:[^"\\]|\\.)+)".*?"ART_NAME"\s*:\s*"((?:[^"\\]|\\.)+)"',
    re.DOTALL,
)


def extract_app_state(html_text: str) -> list[ParsedReference]:
    payload = load_embedded_json(html_text, _APP_STATE_RE)
    if not isinstance(payload, dict):
        return []
    songs = (payload.get("SONGS") or {}).get("data") or []
    return [
        ParsedReference(title=str(song["SNG_TITLE"]), artist=song.get("ART_NAME"))
        for song in songs
        if isinstance(song, dict) and song.get("SNG_TITLE")
    ]


def extract_song_pairs(html_text: str) -> list[ParsedReference]:
    return [
        ParsedReference(title=decode_json_string(match.group(1)), artist=decode_json_string(match.group(2)))
        for match in _SONG_PAIR_RE.finditer(html_text)
    ]


class DeezerScraper(PlaylistScraper):
    platform = "deezer"

    def page_urls(self, playlist) -> list[str]:
        return [f"https://www.deezer.com/en/playlist/{quote(playlist.playlist_id, safe='')}"]

    def extractors(self):
        return [extract_app_state, extract_song_pairs]
