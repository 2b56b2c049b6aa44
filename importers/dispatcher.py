from __future__ import annotations

from .apple_music import AppleMusicScraper
from .base import ParsedReference, PlaylistScraper, ScrapeResult
from .deezer import DeezerScraper
from .generic import AmazonMusicScraper, GenericScraper
from .soundcloud import SoundCloudScraper
from .tidal import TidalScraper
from .youtube import YouTubeScraper

_SCRAPERS: dict[str, PlaylistScraper] = {
    scraper.platform: scraper
    for scraper in (
        YouTubeScraper(),
        SoundCloudScraper(),
        DeezerScraper(),
        AppleMusicScraper(),
        TidalScraper(),
        AmazonMusicScraper(),
    )
}
_FALLBACK = GenericScraper()


def register_scraper(scraper: PlaylistScraper) -> None:
    _SCRAPERS[scraper.platform] = scraper


def get_scraper(platform: str) -> PlaylistScraper:
    return _SCRAPERS.get(str(platform or "").strip().lower(), _FALLBACK)


def scrape_playlist(playlist) -> ScrapeResult:
    """Scrape a parsed playlist URL; an empty result means nothing was found."""
    return get_scraper(playlist.platform).scrape(playlist)


def fetch_playlist_tracks(playlist) -> list[ParsedReference]:
    return scrape_playlist(playlist).tracks
