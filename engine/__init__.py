from .query_normalization import (
    clean_search_query,
    extract_artist_and_track,
    query_needs_cleaning,
    suggest_alternatives,
)
from .reconciler import ImportSummary, ReconciledTrack, reconcile, summarize

__all__ = [
    "ImportSummary",
    "ReconciledTrack",
    "clean_search_query",
    "extract_artist_and_track",
    "query_needs_cleaning",
    "reconcile",
    "suggest_alternatives",
    "summarize",
]
