"""Plain-text track list detection and parsing."""

from __future__ import annotations

import csv
import re
from typing import Optional

from config.settings import MAX_IMPORT_TRACKS
from importers.base import ParsedReference
from input.url_parser import parse_http_url

_LINE_SPLIT_RE = re.compile(r"[\n\r]+")
_DELIMITERS = ",\t;|"
_BY_RE = re.compile(r"^(.+?)\s+by\s+(.+)$", re.IGNORECASE)
_ORDINAL_PREFIX_RE = re.compile(r"^(\d+[.):\-]\s*|[-*•]\s*)")
_FILLER_LINE_RE = re.compile(r"^(track|song|#|\d+\.)?\s*$", re.IGNORECASE)
_TRAILING_BRACKET_RE = re.compile(r"\s*[\(\[]([^()\[\]]*)[\)\]]\s*$")
_TRAILING_BARE_NOISE_RE = re.compile(
    r"\s*[-|]?\s*(?:official\s+)?(?:music\s+|lyric\s+)?(?:video|audio|lyrics)\s*$",
    re.IGNORECASE,
)
_QUALITY_MARKER_RE = re.compile(
    r"\b(official|lyrics?|video|audio|visuali[sz]er|hd|hq|4k)\b",
    re.IGNORECASE,
)
_KEEP_MARKER_RE = re.compile(r"\b(remix|edit|version|mix)\b", re.IGNORECASE)


def looks_like_track_list(raw: str) -> bool:
    """Heuristically decide whether ``raw`` is a pasted track list.

    Ambiguous single lines with an ``" - "`` separator count as a list.
    """
    if parse_http_url(raw) is not None:
        return False
    lines = [line for line in _LINE_SPLIT_RE.split(raw or "") if line.strip()]
    if len(lines) >= 2:
        return True
    return len(lines) == 1 and " - " in lines[0]


def strip_title_annotations(title: str) -> str:
    """Drop trailing official/quality annotations, keep remix/edit/version tags.

    Returns the untouched title when stripping would leave nothing.
    """
    original = (title or "").strip()
    cleaned = original
    while True:
        match = _TRAILING_BRACKET_RE.search(cleaned)
        if not match:
            break
        inner = match.group(1)
        if _KEEP_MARKER_RE.search(inner) or not _QUALITY_MARKER_RE.search(inner):
            break
        cleaned = cleaned[: match.start()].rstrip()
    cleaned = _TRAILING_BARE_NOISE_RE.sub("", cleaned).strip()
    return cleaned or original


def _strip_quotes(value: str) -> str:
    return re.sub(r"^[\"']|[\"']$", "", value.strip()).strip()


def _split_row(line: str, delimiter: str) -> list[str]:
    return next(csv.reader([line], delimiter=delimiter, skipinitialspace=True), [])


def _header_layout(first_line: str) -> Optional[tuple[bool, str]]:
    """Return ``(artist_first, delimiter)`` for a header row, None if no header."""
    lowered = first_line.lower()
    if "artist" not in lowered or "title" not in lowered:
        return None
    delimiter = next((char for char in lowered if char in _DELIMITERS), None)
    if delimiter is None:
        return None
    columns = [column.strip() for column in _split_row(lowered, delimiter)]
    if len(columns) < 2:
        return None
    artist_index = next((i for i, column in enumerate(columns) if "artist" in column), -1)
    title_index = next((i for i, column in enumerate(columns) if "title" in column), -1)
    if artist_index == title_index:
        return None
    return artist_index < title_index, delimiter


def _parse_line(line: str, layout: Optional[tuple[bool, str]]) -> tuple[Optional[str], Optional[str]]:
    if layout is not None and layout[1] in line:
        artist_first, delimiter = layout
        parts = [_strip_quotes(part) for part in _split_row(line, delimiter)]
        if len(parts) >= 2:
            if artist_first:
                return parts[1] or None, parts[0] or None
            return parts[0] or None, parts[1] or None
        return (parts[0] or None) if parts else None, None

    if " - " in line:
        artist, title = line.split(" - ", 1)
        return title.strip(), artist.strip()

    by_match = _BY_RE.match(line)
    if by_match:
        return by_match.group(1).strip(), by_match.group(2).strip()

    if ": " in line:
        artist, title = line.split(": ", 1)
        return title.strip(), artist.strip()

    return _ORDINAL_PREFIX_RE.sub("", line).strip(), None


def parse_track_list(raw: str) -> Optional[list[ParsedReference]]:
    """Parse pasted text into track references.

    Supports ``Artist - Title``, ``Title by Artist``, ``Artist: Title``, bare
    titles and delimited rows under an ``artist``/``title`` header. Returns
    None when nothing could be extracted.
    """
    lines = [
        line.strip()
        for line in _LINE_SPLIT_RE.split(raw or "")
        if line.strip() and not line.strip().startswith("#")
    ]
    if not lines:
        return None

    layout = _header_layout(lines[0])
    if layout is not None:
        lines = lines[1:]

    references: list[ParsedReference] = []
    for line in lines:
        if len(references) >= MAX_IMPORT_TRACKS:
            break
        if len(line) < 2 or _FILLER_LINE_RE.match(line):
            continue
        title, artist = _parse_line(line, layout)
        if not title:
            continue
        title = strip_title_annotations(title)
        if not title:
            continue
        references.append(ParsedReference(title=title, artist=artist or None))

    return references or None
