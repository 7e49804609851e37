"""Spotify Wrapped: OAuth2-backed listening statistics dashboard."""

__version__ = "1.0.0"
