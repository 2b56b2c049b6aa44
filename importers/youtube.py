from __future__ import annotations

import re
from urllib.parse import quote

from importers.base import (
    ParsedReference,
    PlaylistScraper,
    decode_json_string,
    iter_dicts,
    load_embedded_json,
    text_runs,
)
from input.text_tracks import strip_title_annotations

_INITIAL_DATA_RE = re.compile(r"(?:var\s+ytInitialData|window\[\"ytInitialData\"\])\s*=\s*(\{.*?\});\s*</script>", re.DOTALL)
_RUNS_TITLE_RE = re.compile(r'"title"\s*:\s*\{\s*"runs"\s*:\s*\[\s*\{\s*"text"\s*:\s*"((?:[^"\\]|\\.)+)"')
_TOPIC_SUFFIX_RE = re.compile(r"\s*-\s*Topic\s*$", re.IGNORECASE)
_PIPE_NOISE_RE = re.compile(r"\s*\|\s*(?:official|lyric|music video|audio|video).*$", re.IGNORECASE)
_SKIP_TITLES = {"[deleted video]", "[private video]"}
# Page labels in the runs fallback, such as the playlist heading.
_LABEL_MARKER = "Playlist"


def _channel_name(value) -> str | None:
    name = text_runs(value)
    if not name:
        return None
    return _TOPIC_SUFFIX_RE.sub("", name).strip() or None


def extract_initial_data(html_text: str) -> list[ParsedReference]:
    """Read tracks from the ``ytInitialData`` blob of a playlist page."""
    payload = load_embedded_json(html_text, _INITIAL_DATA_RE)
    if payload is None:
        return []
    references: list[ParsedReference] = []
    for node in iter_dicts(payload):
        video = node.get("playlistVideoRenderer")
        if isinstance(video, dict):
            title = text_runs(video.get("title"))
            if title and title.lower() not in _SKIP_TITLES:
                references.append(ParsedReference(title=title, artist=_channel_name(video.get("shortBylineText"))))
            continue
        item = node.get("musicResponsiveListItemRenderer")
        if isinstance(item, dict):
            columns = [
                column.get("musicResponsiveListItemFlexColumnRenderer", {}).get("text")
                for column in item.get("flexColumns") or []
                if isinstance(column, dict)
            ]
            title = text_runs(columns[0]) if columns else None
            artist = _channel_name(columns[1]) if len(columns) > 1 else None
            if title:
                references.append(ParsedReference(title=title, artist=artist))
    return references


def extract_title_runs(html_text: str) -> list[ParsedReference]:
    references = []
    for match in _RUNS_TITLE_RE.finditer(html_text):
        title = decode_json_string(match.group(1)).strip()
        if len(title) < 2 or title.lower() in _SKIP_TITLES or _LABEL_MARKER in title:
            continue
        references.append(ParsedReference(title=title))
    return references


class YouTubeScraper(PlaylistScraper):
    platform = "youtube"

    def page_urls(self, playlist) -> list[str]:
        list_id = quote(playlist.playlist_id, safe="")
        www = f"https://www.youtube.com/playlist?list={list_id}"
        music = f"https://music.youtube.com/playlist?list={list_id}"
        if playlist.is_youtube_music:
            return [music, www]
        return [www, music]

    def extractors(self):
        return [extract_initial_data, extract_title_runs]

    def clean_title(self, title: str) -> str:
        cleaned = _PIPE_NOISE_RE.sub("", title).strip()
        return strip_title_annotations(cleaned or title)
