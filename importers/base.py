from __future__ import annotations

import html
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

import requests

from config.settings import BROWSER_USER_AGENT, EXTERNAL_TIMEOUT_SECONDS, MAX_IMPORT_TRACKS

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

_OG_TITLE_RE = re.compile(r'<meta\s+property="og:title"\s+content="([^"]+)"', re.IGNORECASE)


@dataclass(frozen=True)
class ParsedReference:
    title: str
    artist: Optional[str] = None

    def search_query(self) -> str:
        if self.artist:
            return f"{self.title} {self.artist}"
        return self.title


@dataclass(frozen=True)
class ScrapeResult:
    tracks: list[ParsedReference] = field(default_factory=list)
    playlist_name: Optional[str] = None


Extractor = Callable[[str], list[ParsedReference]]


def fetch_page(url: str, *, timeout: float = EXTERNAL_TIMEOUT_SECONDS) -> str:
    """GET ``url`` with a browser User-Agent; raises on network errors and non-2xx."""
    response = requests.get(url, headers=_DEFAULT_HEADERS, timeout=timeout, allow_redirects=True)
    response.raise_for_status()
    return response.text


def decode_json_string(raw: str) -> str:
    """Decode a JSON string literal body captured by a regex."""
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw


def load_embedded_json(html_text: str, pattern: re.Pattern[str]) -> Any:
    match = pattern.search(html_text)
    if not match:
        return None
    return json.loads(match.group(1))


def iter_dicts(payload: Any) -> Iterator[dict[str, Any]]:
    """Yield every dict nested anywhere inside ``payload``, depth first."""
    stack = [payload]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            yield current
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))


def text_runs(value: Any) -> Optional[str]:
    """Join a ``{"runs": [{"text": ...}]}`` or ``{"simpleText": ...}`` node."""
    if not isinstance(value, dict):
        return None
    if isinstance(value.get("simpleText"), str):
        return value["simpleText"].strip() or None
    runs = value.get("runs")
    if not isinstance(runs, list):
        return None
    text = "".join(str(run.get("text") or "") for run in runs if isinstance(run, dict)).strip()
    return text or None


def extract_og_title(html_text: str) -> Optional[str]:
    match = _OG_TITLE_RE.search(html_text)
    if not match:
        return None
    return html.unescape(match.group(1)).strip() or None


def extract_og_title_reference(html_text: str) -> list[ParsedReference]:
    """Fallback: treat the page's Open Graph title as a single reference."""
    title = extract_og_title(html_text)
    return [ParsedReference(title=title)] if title else []


def finalize_references(references: list[ParsedReference], limit: int = MAX_IMPORT_TRACKS) -> list[ParsedReference]:
    """Trim, drop empties, dedupe by title and cap the list."""
    seen: set[str] = set()
    out: list[ParsedReference] = []
    for ref in references:
        title = (ref.title or "").strip()
        if not title:
            continue
        key = title.casefold()
        if key in seen:
            continue
        seen.add(key)
        artist = (ref.artist or "").strip() or None
        out.append(ParsedReference(title=title, artist=artist))
        if len(out) >= limit:
            break
    return out


class PlaylistScraper(ABC):
    """Platform scraper: URL variants tried in order, extractors tried in order.

    A fetch or extractor that fails counts as finding nothing.
    """

    platform = "generic"

    @abstractmethod
    def page_urls(self, playlist) -> list[str]:
        """Ordered page URLs worth fetching for ``playlist``."""
        raise NotImplementedError

    @abstractmethod
    def extractors(self) -> list[Extractor]:
        raise NotImplementedError

    def clean_title(self, title: str) -> str:
        return title

    def playlist_name(self, html_text: str) -> Optional[str]:
        return extract_og_title(html_text)

    def scrape(self, playlist) -> ScrapeResult:
        for url in self.page_urls(playlist):
            try:
                html_text = fetch_page(url)
            except requests.RequestException as exc:
                logger.debug("scrape fetch failed platform=%s url=%s error=%s", self.platform, url, exc)
                continue
            for extractor in self.extractors():
                try:
                    found = extractor(html_text)
                except Exception:
                    logger.debug(
                        "scrape extractor failed platform=%s extractor=%s",
                        self.platform,
                        getattr(extractor, "__name__", extractor),
                        exc_info=True,
                    )
                    continue
                cleaned = [
                    ParsedReference(title=self.clean_title(ref.title), artist=ref.artist)
                    for ref in found
                ]
                references = finalize_references(cleaned)
                if references:
                    logger.info(
                        "scraped %d tracks platform=%s extractor=%s",
                        len(references),
                        self.platform,
                        getattr(extractor, "__name__", extractor),
                    )
                    return ScrapeResult(tracks=references, playlist_name=self.playlist_name(html_text))
        return ScrapeResult()
