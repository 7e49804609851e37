#!/usr/bin/env python
"""Aggregation of a user's top items into dashboard envelopes."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol

from spotify_wrapped.exceptions import InvalidRequest
from spotify_wrapped.models.dto import (
    Album,
    Artist,
    TimeRange,
    TopItemsEnvelope,
    Track,
    WrappedResponse,
)

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 50


class TopItemsSource(Protocol):
    def top_tracks(self, limit: int, time_range: TimeRange) -> List[Track]: ...

    def top_artists(self, limit: int, time_range: TimeRange) -> List[Artist]: ...


def validate_limit(limit: object, default: int = 5, maximum: int = MAX_LIMIT) -> int:
    """Coerce a raw ``limit`` query value; missing means ``default``."""
    if limit is None or (isinstance(limit, str) and not limit.strip()):
        return min(default, maximum)
    try:
        value = int(limit)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidRequest(f"Limit must be an integer between {MIN_LIMIT} and {maximum}") from None
    if value < MIN_LIMIT:
        raise InvalidRequest(f"Limit must be at least {MIN_LIMIT}")
    if value > maximum:
        raise InvalidRequest(f"Limit must be at most {maximum}")
    return value


def distinct_albums(tracks: Iterable[Track], limit: int) -> List[Album]:
    """Albums of ``tracks`` in first-seen order, one per album id."""
    seen = set()
    albums: List[Album] = []
    for track in tracks:
        if track.album.id in seen:
            continue
        seen.add(track.album.id)
        albums.append(track.album)
        if len(albums) >= limit:
            break
    return albums


def distinct_genres(artists: Iterable[Artist], limit: int) -> List[str]:
    """Flatten artist genres, dropping repeats while keeping first-seen order."""
    seen = set()
    genres: List[str] = []
    for artist in artists:
        for genre in artist.genres:
            if genre in seen:
                continue
            seen.add(genre)
            genres.append(genre)
            if len(genres) >= limit:
                return genres
    return genres


class WrappedService:
    """Builds per-category envelopes and the combined wrapped payload."""

    def __init__(self, source: TopItemsSource, *, max_limit: int = MAX_LIMIT):
        self._source = source
        self._max_limit = max_limit

    def _check(self, limit: int) -> int:
        return validate_limit(limit, maximum=self._max_limit)

    def top_tracks(self, limit: int, time_range: TimeRange = TimeRange.MEDIUM_TERM) -> TopItemsEnvelope[Track]:
        limit = self._check(limit)
        tracks = self._source.top_tracks(limit, time_range)[:limit]
        return TopItemsEnvelope[Track].of("tracks", tracks)

    def top_artists(self, limit: int, time_range: TimeRange = TimeRange.MEDIUM_TERM) -> TopItemsEnvelope[Artist]:
        limit = self._check(limit)
        artists = self._source.top_artists(limit, time_range)[:limit]
        return TopItemsEnvelope[Artist].of("artists", artists)

    def top_albums(self, limit: int, time_range: TimeRange = TimeRange.MEDIUM_TERM,
                   tracks: Optional[List[Track]] = None) -> TopItemsEnvelope[Album]:
        limit = self._check(limit)
        if tracks is None:
            tracks = self._source.top_tracks(limit, time_range)
        return TopItemsEnvelope[Album].of("albums", distinct_albums(tracks, limit))

    def top_genres(self, limit: int, time_range: TimeRange = TimeRange.MEDIUM_TERM,
                   artists: Optional[List[Artist]] = None) -> TopItemsEnvelope[str]:
        limit = self._check(limit)
        if artists is None:
            artists = self._source.top_artists(limit, time_range)
        return TopItemsEnvelope[str].of("genres", distinct_genres(artists, limit))

    def wrapped(self, limit: int, time_range: TimeRange = TimeRange.MEDIUM_TERM) -> WrappedResponse:
        """Fetch tracks and artists once; albums and genres are derived from them.

        Any upstream error propagates unchanged, so no partial payload is ever built.
        """
        limit = self._check(limit)
        tracks = self._source.top_tracks(limit, time_range)[:limit]
        artists = self._source.top_artists(limit, time_range)[:limit]
        logger.info(
            "Built wrapped summary: %s tracks, %s artists (limit=%s, time_range=%s)",
            len(tracks), len(artists), limit, time_range.value,
        )
        return WrappedResponse(
            top_tracks=TopItemsEnvelope[Track].of("tracks", tracks),
            top_artists=TopItemsEnvelope[Artist].of("artists", artists),
            top_albums=self.top_albums(limit, time_range, tracks=tracks),
            top_genres=self.top_genres(limit, time_range, artists=artists),
        )


__all__ = [
    "WrappedService",
    "TopItemsSource",
    "validate_limit",
    "distinct_albums",
    "distinct_genres",
]
