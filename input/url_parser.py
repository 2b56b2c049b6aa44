"""Single-track URL recognition across supported music platforms.

Recognizers live in an ordered registry so platforms can be added or removed
without touching :func:`classify`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import ParseResult, parse_qs, urlparse


@dataclass(frozen=True)
class PlatformMatch:
    platform: str
    query: str  # platform id, slug-derived search seed, or the page URL
    raw_url: str


@dataclass(frozen=True)
class PlatformParser:
    platform: str
    match: Callable[[ParseResult], bool]
    parse: Callable[[ParseResult], Optional[str]]


def parse_http_url(raw: str) -> Optional[ParseResult]:
    """Return the parsed URL when ``raw`` is an absolute http(s) URL."""
    text = (raw or "").strip()
    if not text or any(ch.isspace() for ch in text):
        return None
    try:
        parsed = urlparse(text)
    except ValueError:
        return None
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        return None
    return parsed


def host_of(url: ParseResult) -> str:
    return (url.hostname or "").lower()


def _path_parts(url: ParseResult) -> list[str]:
    return [segment for segment in (url.path or "").split("/") if segment]


def first_query_value(url: ParseResult, key: str) -> Optional[str]:
    values = parse_qs(url.query).get(key)
    if not values:
        return None
    value = values[0].strip()
    return value or None


def _youtube_match(url: ParseResult) -> bool:
    host = host_of(url)
    return "youtube.com" in host or "youtu.be" in host


def _youtube_parse(url: ParseResult) -> Optional[str]:
    if "youtu.be" in host_of(url):
        parts = _path_parts(url)
        return parts[0] if parts else None
    parts = _path_parts(url)
    if len(parts) >= 2 and parts[0] in {"shorts", "embed", "live"}:
        return parts[1]
    return first_query_value(url, "v")


def _soundcloud_match(url: ParseResult) -> bool:
    return "soundcloud.com" in host_of(url)


def _soundcloud_parse(url: ParseResult) -> Optional[str]:
    parts = _path_parts(url)
    if len(parts) < 2:
        return None
    return " ".join(parts).replace("-", " ")


def _spotify_match(url: ParseResult) -> bool:
    return "spotify.com" in host_of(url)


def _spotify_parse(url: ParseResult) -> Optional[str]:
    match = re.search(r"track/([a-zA-Z0-9]+)", url.path or "")
    return match.group(1) if match else None


def _deezer_match(url: ParseResult) -> bool:
    return "deezer.com" in host_of(url) or host_of(url) == "deezer.page.link"


def _deezer_parse(url: ParseResult) -> Optional[str]:
    if re.search(r"/track/\d+", url.path or ""):
        return url.geturl()
    return None


def _apple_music_match(url: ParseResult) -> bool:
    return host_of(url) == "music.apple.com"


def _apple_music_parse(url: ParseResult) -> Optional[str]:
    path = url.path or ""
    if "/song/" in path:
        return url.geturl()
    if "/album/" in path and first_query_value(url, "i"):
        return url.geturl()
    return None


def _bandcamp_match(url: ParseResult) -> bool:
    return host_of(url).endswith("bandcamp.com")


def _bandcamp_parse(url: ParseResult) -> Optional[str]:
    return url.geturl() if "/track/" in (url.path or "") else None


def _tidal_match(url: ParseResult) -> bool:
    return host_of(url) in {"tidal.com", "www.tidal.com", "listen.tidal.com"}


def _tidal_parse(url: ParseResult) -> Optional[str]:
    return url.geturl() if re.search(r"/track/\d+", url.path or "") else None


_PARSERS: list[PlatformParser] = [
    PlatformParser("youtube", _youtube_match, _youtube_parse),
    PlatformParser("soundcloud", _soundcloud_match, _soundcloud_parse),
    PlatformParser("spotify", _spotify_match, _spotify_parse),
    PlatformParser("deezer", _deezer_match, _deezer_parse),
    PlatformParser("apple-music", _apple_music_match, _apple_music_parse),
    PlatformParser("bandcamp", _bandcamp_match, _bandcamp_parse),
    PlatformParser("tidal", _tidal_match, _tidal_parse),
]


def register_parser(parser: PlatformParser) -> None:
    """Register a parser ahead of the built-ins so it takes precedence."""
    _PARSERS.insert(0, parser)


def unregister_parser(platform: str) -> None:
    for index, parser in enumerate(_PARSERS):
        if parser.platform == platform:
            del _PARSERS[index]
            return


def get_parsers() -> tuple[PlatformParser, ...]:
    return tuple(_PARSERS)


def classify(raw: str) -> Optional[PlatformMatch]:
    """Classify ``raw`` as a single-track URL on a known platform.

    Returns None for non-URLs, unknown hosts, and recognized hosts whose URL
    does not point at a usable item (e.g. a channel page).
    """
    url = parse_http_url(raw)
    if url is None:
        return None
    for parser in _PARSERS:
        if not parser.match(url):
            continue
        query = parser.parse(url)
        if query:
            return PlatformMatch(platform=parser.platform, query=query, raw_url=raw.strip())
    return None


def is_supported_url(raw: str) -> bool:
    return classify(raw) is not None


def get_supported_platforms() -> list[str]:
    return [parser.platform for parser in _PARSERS]
