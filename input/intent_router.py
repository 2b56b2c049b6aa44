"""Intent routing helpers for raw import input."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from input.playlist_url_parser import parse_playlist_url
from input.text_tracks import looks_like_track_list
from input.url_parser import classify


class IntentType(Enum):
    TEXT_LIST = "text_list"
    PLAYLIST = "playlist"
    TRACK_URL = "track_url"
    SEARCH = "search"


@dataclass
class Intent:
    type: IntentType
    identifier: str  # original input, trimmed
    detail: Any = None  # ParsedPlaylistUrl or PlatformMatch when a URL matched


def _text_list(raw: str) -> Optional[Any]:
    return True if looks_like_track_list(raw) else None


# First match wins; playlist URLs are checked before single-item URLs.
_INTENT_CHAIN: tuple[tuple[IntentType, Callable[[str], Optional[Any]]], ...] = (
    (IntentType.TEXT_LIST, _text_list),
    (IntentType.PLAYLIST, parse_playlist_url),
    (IntentType.TRACK_URL, classify),
)


def detect_intent(user_input: str) -> Intent:
    """Detect intent from user input without network calls.

    Rules:
    - Multi-line text, or one ``Artist - Title`` line, is a ``TEXT_LIST``.
    - Recognized playlist URLs are ``PLAYLIST``.
    - Recognized single-item URLs are ``TRACK_URL``.
    - Otherwise treat input as plain ``SEARCH``.
    """
    raw = (user_input or "").strip()
    if not raw:
        return Intent(type=IntentType.SEARCH, identifier="")

    for intent_type, predicate in _INTENT_CHAIN:
        detail = predicate(raw)
        if detail is not None:
            return Intent(type=intent_type, identifier=raw, detail=None if detail is True else detail)

    return Intent(type=IntentType.SEARCH, identifier=raw)
