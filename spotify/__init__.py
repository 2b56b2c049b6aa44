"""Spotify integration modules."""

from spotify.client import SpotifyAPIError, SpotifyClient

__all__ = ["SpotifyAPIError", "SpotifyClient"]
