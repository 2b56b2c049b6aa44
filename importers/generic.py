from __future__ import annotations

import html
import re
from urllib.parse import unquote, urlparse

from importers.apple_music import extract_json_ld_recordings
from importers.base import ParsedReference, PlaylistScraper, extract_og_title_reference

_SONG_META_RE = re.compile(r'<meta\s+(?:property|name)="music:song"\s+content="([^"]+)"', re.IGNORECASE)
_SLUG_ID_RE = re.compile(r"^[A-Z0-9]{8,}$|^\d+$")


def _song_title(content: str) -> str:
    """Turn a ``music:song`` value into a title; URLs contribute their slug."""
    value = html.unescape(content).strip()
    if not value.lower().startswith(("http://", "https://")):
        return value
    segments = [segment for segment in urlparse(value).path.split("/") if segment]
    for segment in reversed(segments):
        if not _SLUG_ID_RE.match(segment):
            return unquote(segment).replace("-", " ").strip()
    return ""


def extract_song_meta(html_text: str) -> list[ParsedReference]:
    return [ParsedReference(title=_song_title(match.group(1))) for match in _SONG_META_RE.finditer(html_text)]


class GenericScraper(PlaylistScraper):
    """Best-effort scraper for pages that only expose Open Graph music tags."""

    platform = "generic"

    def page_urls(self, playlist) -> list[str]:
        return [playlist.url]

    def extractors(self):
        return [extract_song_meta, extract_json_ld_recordings, extract_og_title_reference]


class AmazonMusicScraper(GenericScraper):
    platform = "amazon-music"
