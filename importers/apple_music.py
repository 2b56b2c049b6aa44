from __future__ import annotations

import html
import json
import re

from importers.base import ParsedReference, PlaylistScraper, decode_json_string, iter_dicts, load_embedded_json

_JSON_LD_RE = re.compile(r'<script[^>]+type="application/ld\+json"[^>]*>(.*?)</script>', re.DOTALL | re.IGNORECASE)
_SERVER_DATA_RE = re.compile(
    r'<script[^>]+id="serialized-server-data"[^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)
_RECORDING_RE = re.compile(
    r'"@type"\s*:\s*"MusicRecording"\s*,\s*"name"\s*:\s*"((?:[^"\\]|\\.)+)"'
    r'|"name"\s*:\s*"((?:[^"\\]|\\.)+)"\s*,\s*"@type"\s*:\s*"MusicRecording"'
)


def _artist_name(value) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        return value.get("name")
    if isinstance(value, str):
        return value
    return None


def extract_json_ld_recordings(html_text: str) -> list[ParsedReference]:
    """Collect ``MusicRecording`` entries from every JSON-LD block on the page."""
    references: list[ParsedReference] = []
    for block in _JSON_LD_RE.finditer(html_text):
        try:
            payload = json.loads(html.unescape(block.group(1)))
        except ValueError:
            continue
        for node in iter_dicts(payload):
            if node.get("@type") == "MusicRecording" and node.get("name"):
                references.append(ParsedReference(title=str(node["name"]), artist=_artist_name(node.get("byArtist"))))
    return references


def extract_server_data(html_text: str) -> list[ParsedReference]:
    payload = load_embedded_json(html_text, _SERVER_DATA_RE)
    if payload is None:
        return []
    return [
        ParsedReference(title=str(node["title"]), artist=node.get("artistName"))
        for node in iter_dicts(payload)
        if isinstance(node.get("title"), str) and isinstance(node.get("artistName"), str)
    ]


def extract_recording_names(html_text: str) -> list[ParsedReference]:
    return [
        ParsedReference(title=decode_json_string(match.group(1) or match.group(2)))
        for match in _RECORDING_RE.finditer(html_text)
    ]


class AppleMusicScraper(PlaylistScraper):
    platform = "apple-music"

    def page_urls(self, playlist) -> list[str]:
        return [playlist.url]

    def extractors(self):
        return [extract_json_ld_recordings, extract_server_data, extract_recording_names]
