"""Title lookups for single-item URLs that have no catalog id."""

from __future__ import annotations

import html
import logging
import re

import requests

from config.settings import EXTERNAL_TIMEOUT_SECONDS
from importers.base import fetch_page
from input.text_tracks import strip_title_annotations

logger = logging.getLogger(__name__)

YOUTUBE_OEMBED_URL = "https://www.youtube.com/oembed"

_TITLE_TAG_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_SITE_SUFFIX_RES = (
    re.compile(r"\s+on Apple Music\s*$", re.IGNORECASE),
    re.compile(r"\s*[-|]\s*Deezer\s*$", re.IGNORECASE),
    re.compile(r"\s*\|\s*Bandcamp\s*$", re.IGNORECASE),
    re.compile(r"\s*\|\s*TIDAL\s*$", re.IGNORECASE),
    re.compile(r"\s*[-|]\s*YouTube\s*$", re.IGNORECASE),
    re.compile(r"\s*\[[^\]]*\]\s*$"),
)


def fetch_youtube_title(video_id: str) -> str | None:
    params = {"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"}
    try:
        response = requests.get(YOUTUBE_OEMBED_URL, params=params, timeout=EXTERNAL_TIMEOUT_SECONDS)
        response.raise_for_status()
        title = str(response.json().get("title") or "").strip()
    except (requests.RequestException, ValueError) as exc:
        logger.debug("youtube oembed lookup failed video_id=%s error=%s", video_id, exc)
        return None
    if not title:
        return None
    return strip_title_annotations(title)


def clean_page_title(title: str) -> str:
    cleaned = html.unescape(title or "").strip()
    for pattern in _SITE_SUFFIX_RES:
        cleaned = pattern.sub("", cleaned).strip()
    return cleaned


def fetch_page_title(url: str) -> str | None:
    try:
        page = fetch_page(url)
    except requests.RequestException as exc:
        logger.debug("page title lookup failed url=%s error=%s", url, exc)
        return None
    match = _TITLE_TAG_RE.search(page)
    if not match:
        return None
    return clean_page_title(match.group(1)) or None
