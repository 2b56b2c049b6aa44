"""Search query cleanup and alternative-query suggestions for noisy titles."""

from __future__ import annotations

import re
from typing import Optional

# Ordered: the first 20 entries drive query_needs_cleaning().
NOISE_WORDS: tuple[str, ...] = (
    "official",
    "video",
    "audio",
    "music video",
    "mv",
    "lyric",
    "lyrics",
    "lyric video",
    "official video",
    "official audio",
    "official music video",
    "hd",
    "hq",
    "4k",
    "1080p",
    "720p",
    "high quality",
    "hi-fi",
    "hifi",
    "live",
    "live version",
    "live performance",
    "acoustic",
    "acoustic version",
    "remix",
    "remixed",
    "remaster",
    "remastered",
    "extended",
    "extended mix",
    "radio edit",
    "single version",
    "album version",
    "visualizer",
    "visualiser",
    "animated",
    "premiere",
    "vevo",
    "full song",
    "full track",
    "new song",
    "new music",
    "prod by",
    "prod.",
    "produced by",
    "feat",
    "feat.",
    "featuring",
    "ft",
    "ft.",
)

_COMMON_NOISE_WORDS = NOISE_WORDS[:20]

_NOISE_MARKERS = r"(?:official|video|audio|lyric|hd|hq|4k|live|remix|remaster|visuali)"
_CLEANUP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\s*\([^)]*" + _NOISE_MARKERS + r"[^)]*\)\s*", re.IGNORECASE),
    re.compile(r"\s*\[[^\]]*" + _NOISE_MARKERS + r"[^\]]*\]\s*", re.IGNORECASE),
    re.compile(r"\s*[\(\[]?\b\d{4}\b[\)\]]?\s*$"),
    re.compile(r"\s*(?<!\w)(?:feat\.?|ft\.?|featuring)\s+.+$", re.IGNORECASE),
    re.compile(r"\s*-\s*topic\s*$", re.IGNORECASE),
)
# Longest phrases first so "official music video" wins over "video".
_NOISE_WORD_RES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(r"(?<!\w)" + re.escape(word) + r"(?!\w)", re.IGNORECASE)
    for word in sorted(set(NOISE_WORDS), key=len, reverse=True)
)
_WS_RE = re.compile(r"\s+")

_ARTIST_TRACK_SEPARATORS = (" - ", " – ", " — ", ": ", " | ")
_PREFIX_SEPARATORS = (" (", " [", " |", " -")
_MAX_SUGGESTIONS = 4


def _clean_once(text: str) -> str:
    cleaned = text
    for pattern in _CLEANUP_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    for pattern in _NOISE_WORD_RES:
        cleaned = pattern.sub(" ", cleaned)
    return _WS_RE.sub(" ", cleaned).strip()


def clean_search_query(query: str) -> str:
    """Lower-case ``query`` and strip presentation noise from it.

    Removes noisy bracketed spans, trailing years, featuring clauses, the
    auto-generated ``- Topic`` channel suffix and whole-word noise terms.
    Passes repeat until the text stops changing, so the result is stable
    under a second call.
    """
    cleaned = _WS_RE.sub(" ", str(query or "").lower()).strip()
    while True:
        candidate = _clean_once(cleaned)
        if candidate == cleaned:
            break
        cleaned = candidate
    return cleaned


def extract_artist_and_track(query: str) -> tuple[Optional[str], Optional[str]]:
    cleaned = clean_search_query(query)
    for separator in _ARTIST_TRACK_SEPARATORS:
        if separator in cleaned:
            artist, track = cleaned.split(separator, 1)
            artist = artist.strip()
            track = track.strip()
            if artist and track:
                return artist, track
    return None, None


def suggest_alternatives(original: str) -> list[str]:
    """Build up to four alternative queries, most specific first."""
    original_key = str(original or "").lower().strip()
    suggestions: list[str] = []
    seen: set[str] = set()

    def _add(candidate: str) -> None:
        value = _WS_RE.sub(" ", candidate or "").strip()
        key = value.lower()
        if not value or key == original_key or key in seen:
            return
        seen.add(key)
        suggestions.append(value)

    cleaned = clean_search_query(original)
    if len(cleaned) >= 3:
        _add(cleaned)

    artist, track = extract_artist_and_track(original)
    if artist and track:
        _add(f"{artist} {track}")
        if len(track) >= 3:
            _add(track)
        if len(artist) >= 3:
            _add(artist)

    raw = str(original or "")
    for separator in _PREFIX_SEPARATORS:
        index = raw.find(separator)
        if index > 0:
            before = raw[:index].strip()
            if len(before) >= 3:
                _add(clean_search_query(before))

    words = cleaned.split()
    if len(words) > 3:
        _add(" ".join(words[:3]))
        _add(" ".join(words[:2]))

    return suggestions[:_MAX_SUGGESTIONS]


def query_needs_cleaning(query: str) -> bool:
    lowered = str(query or "").lower()
    if any(word in lowered for word in _COMMON_NOISE_WORDS):
        return True
    return "(" in lowered or "[" in lowered
