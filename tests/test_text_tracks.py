from __future__ import annotations

from importers.base import ParsedReference
from input.text_tracks import looks_like_track_list, parse_track_list, strip_title_annotations


def test_looks_like_track_list() -> None:
    assert looks_like_track_list("Daft Punk - One More Time") is True
    assert looks_like_track_list("one more time\naround the world") is True
    assert looks_like_track_list("one more time") is False
    assert looks_like_track_list("https://www.youtube.com/playlist?list=PL123") is False
    assert looks_like_track_list("") is False
    assert looks_like_track_list("not a url, not multiline") is False


def test_artist_title_and_by_forms() -> None:
    refs = parse_track_list("Artist - Title\nTitle2 by Artist2")
    assert refs == [
        ParsedReference(title="Title", artist="Artist"),
        ParsedReference(title="Title2", artist="Artist2"),
    ]


def test_colon_and_numbered_lines() -> None:
    refs = parse_track_list("Queen: Bohemian Rhapsody\n1. Around the World\n- Digital Love")
    assert refs == [
        ParsedReference(title="Bohemian Rhapsody", artist="Queen"),
        ParsedReference(title="Around the World"),
        ParsedReference(title="Digital Love"),
    ]


def test_header_row_sets_column_order() -> None:
    refs = parse_track_list('title,artist\nOne More Time,Daft Punk\n"Hey Jude","The Beatles"')
    assert refs == [
        ParsedReference(title="One More Time", artist="Daft Punk"),
        ParsedReference(title="Hey Jude", artist="The Beatles"),
    ]


def test_quoted_cells_keep_embedded_delimiters() -> None:
    refs = parse_track_list('title,artist\n"Hello, Goodbye","The Beatles"\n"Crosby, Stills & Nash",Suite')
    assert refs == [
        ParsedReference(title="Hello, Goodbye", artist="The Beatles"),
        ParsedReference(title="Crosby, Stills & Nash", artist="Suite"),
    ]


def test_artist_first_tab_header() -> None:
    refs = parse_track_list("Artist\tTitle\nDaft Punk\tOne More Time")
    assert refs == [ParsedReference(title="One More Time", artist="Daft Punk")]


def test_single_artist_title_line_is_not_mistaken_for_header() -> None:
    assert parse_track_list("Artist - Title") == [ParsedReference(title="Title", artist="Artist")]


def test_comments_blanks_and_filler_lines_are_skipped() -> None:
    refs = parse_track_list("# my mix\n\nDaft Punk - One More Time\ntrack\n\n")
    assert refs == [ParsedReference(title="One More Time", artist="Daft Punk")]


def test_quality_annotations_are_stripped_but_mixes_kept() -> None:
    refs = parse_track_list(
        "Daft Punk - One More Time (Official Video)\n"
        "Daft Punk - Around the World [HD] (Lyrics)\n"
        "Daft Punk - Face to Face (Cosmo Vitelli Remix)"
    )
    assert [ref.title for ref in refs] == [
        "One More Time",
        "Around the World",
        "Face to Face (Cosmo Vitelli Remix)",
    ]


def test_strip_title_annotations_never_empties_title() -> None:
    assert strip_title_annotations("(Official Video)") == "(Official Video)"
    assert strip_title_annotations("Song - Official Audio") == "Song"
    assert strip_title_annotations("Song (Extended Mix)") == "Song (Extended Mix)"
    assert strip_title_annotations("Song (Live at Wembley)") == "Song (Live at Wembley)"


def test_output_is_capped_at_fifty() -> None:
    raw = "\n".join(f"Artist {index} - Song {index}" for index in range(60))
    refs = parse_track_list(raw)
    assert len(refs) == 50
    assert refs[-1] == ParsedReference(title="Song 49", artist="Artist 49")


def test_nothing_parseable_returns_none() -> None:
    assert parse_track_list("# only a comment\n\n") is None
    assert parse_track_list("") is None
