"""Playlist URL recognition across supported music platforms."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import ParseResult

from input.url_parser import PlatformParser, parse_http_url, first_query_value, host_of

PLATFORM_LABELS = {
    "youtube": "YouTube",
    "soundcloud": "SoundCloud",
    "spotify": "Spotify",
    "deezer": "Deezer",
    "apple-music": "Apple Music",
    "tidal": "Tidal",
    "amazon-music": "Amazon Music",
}

_YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}


@dataclass(frozen=True)
class ParsedPlaylistUrl:
    platform: str
    playlist_id: str
    url: str

    @property
    def is_youtube_music(self) -> bool:
        return "music.youtube.com" in self.url.lower()


def _youtube_match(url: ParseResult) -> bool:
    if host_of(url) not in _YOUTUBE_HOSTS:
        return False
    return bool(first_query_value(url, "list")) or "/playlist" in (url.path or "")


def _youtube_parse(url: ParseResult) -> Optional[str]:
    return first_query_value(url, "list")


def _soundcloud_match(url: ParseResult) -> bool:
    host = host_of(url)
    return (host == "soundcloud.com" or host.endswith(".soundcloud.com")) and "/sets/" in (url.path or "")


def _spotify_match(url: ParseResult) -> bool:
    host = host_of(url)
    return (host == "open.spotify.com" or host.endswith(".spotify.com")) and "/playlist/" in (url.path or "")


def _spotify_parse(url: ParseResult) -> Optional[str]:
    match = re.search(r"playlist/([a-zA-Z0-9]{22})", url.path or "")
    return match.group(1) if match else None


def _deezer_match(url: ParseResult) -> bool:
    host = host_of(url)
    return (host == "deezer.com" or host.endswith(".deezer.com")) and "/playlist/" in (url.path or "")


def _deezer_parse(url: ParseResult) -> Optional[str]:
    match = re.search(r"playlist/(\d+)", url.path or "")
    return match.group(1) if match else None


def _apple_music_match(url: ParseResult) -> bool:
    return host_of(url) == "music.apple.com" and "/playlist/" in (url.path or "")


def _tidal_match(url: ParseResult) -> bool:
    return host_of(url) in {"tidal.com", "www.tidal.com", "listen.tidal.com"} and "/playlist/" in (url.path or "")


def _tidal_parse(url: ParseResult) -> Optional[str]:
    match = re.search(r"playlist/([a-zA-Z0-9-]+)", url.path or "")
    return match.group(1) if match else None


def _amazon_music_match(url: ParseResult) -> bool:
    host = host_of(url)
    path = url.path or ""
    is_amazon_music = (
        host == "music.amazon.com"
        or host.startswith("music.amazon.")
        or host.endswith(".music.amazon.com")
        or ("amazon." in host and "/music/" in path)
    )
    return is_amazon_music and ("/playlists/" in path or "/user-playlists/" in path)


def _full_url(url: ParseResult) -> Optional[str]:
    return url.geturl()


_PLAYLIST_PARSERS: list[PlatformParser] = [
    PlatformParser("youtube", _youtube_match, _youtube_parse),
    PlatformParser("soundcloud", _soundcloud_match, _full_url),
    PlatformParser("spotify", _spotify_match, _spotify_parse),
    PlatformParser("deezer", _deezer_match, _deezer_parse),
    PlatformParser("apple-music", _apple_music_match, _full_url),
    PlatformParser("tidal", _tidal_match, _tidal_parse),
    PlatformParser("amazon-music", _amazon_music_match, _full_url),
]


def register_playlist_parser(parser: PlatformParser) -> None:
    _PLAYLIST_PARSERS.insert(0, parser)


def unregister_playlist_parser(platform: str) -> None:
    for index, parser in enumerate(_PLAYLIST_PARSERS):
        if parser.platform == platform:
            del _PLAYLIST_PARSERS[index]
            return


def parse_playlist_url(raw: str) -> Optional[ParsedPlaylistUrl]:
    """Return the playlist platform and id for ``raw``, or None."""
    url = parse_http_url(raw)
    if url is None:
        return None
    for parser in _PLAYLIST_PARSERS:
        if not parser.match(url):
            continue
        playlist_id = parser.parse(url)
        if playlist_id:
            return ParsedPlaylistUrl(platform=parser.platform, playlist_id=playlist_id, url=raw.strip())
    return None


def is_playlist_url(raw: str) -> bool:
    return parse_playlist_url(raw) is not None


def get_supported_playlist_platforms() -> list[str]:
    return [parser.platform for parser in _PLAYLIST_PARSERS]


def platform_label(platform: str) -> str:
    return PLATFORM_LABELS.get(platform, platform.replace("-", " ").title())
