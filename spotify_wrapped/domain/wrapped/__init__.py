"""Listening statistics aggregation."""

from .service import WrappedService, distinct_albums, distinct_genres, validate_limit

__all__ = ["WrappedService", "distinct_albums", "distinct_genres", "validate_limit"]
