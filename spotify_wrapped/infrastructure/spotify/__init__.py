"""Spotify Web API access."""

from .client import SpotifyApiClient, build_default_client, translate_spotify_error

__all__ = ["SpotifyApiClient", "build_default_client", "translate_spotify_error"]
