from __future__ import annotations

import pytest

from input.intent_router import IntentType, detect_intent


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://www.youtube.com/playlist?list=PL123", IntentType.PLAYLIST),
        ("https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M", IntentType.PLAYLIST),
        ("https://soundcloud.com/artist/sets/mix", IntentType.PLAYLIST),
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", IntentType.TRACK_URL),
        ("https://open.spotify.com/track/6rqhFgbbKwnb9MLmUQDhG6", IntentType.TRACK_URL),
        ("https://www.deezer.com/en/track/3135556", IntentType.TRACK_URL),
        ("Daft Punk - One More Time", IntentType.TEXT_LIST),
        ("one more time\naround the world", IntentType.TEXT_LIST),
        ("daft punk one more time", IntentType.SEARCH),
        ("https://example.com/something", IntentType.SEARCH),
    ],
)
def test_detect_intent_types(raw: str, expected: IntentType) -> None:
    assert detect_intent(raw).type == expected


def test_playlist_wins_over_single_item_url() -> None:
    intent = detect_intent("https://www.youtube.com/watch?v=abc&list=PL9")
    assert intent.type == IntentType.PLAYLIST
    assert intent.detail.playlist_id == "PL9"


def test_track_url_detail_is_platform_match() -> None:
    intent = detect_intent("  https://youtu.be/dQw4w9WgXcQ  ")
    assert intent.identifier == "https://youtu.be/dQw4w9WgXcQ"
    assert intent.detail.platform == "youtube"
    assert intent.detail.query == "dQw4w9WgXcQ"


def test_text_and_search_have_no_detail() -> None:
    assert detect_intent("Artist - Title").detail is None
    assert detect_intent("plain words").detail is None


def test_empty_input_is_empty_search() -> None:
    intent = detect_intent("   ")
    assert intent.type == IntentType.SEARCH
    assert intent.identifier == ""
