#!/usr/bin/env python
"""
Pydantic DTOs mirroring the Spotify Web API shapes the dashboard consumes.

Upstream payloads carry many more fields than we render; unknown fields are
ignored so API additions never break mapping. Models are frozen: they only
live for the duration of one request/response cycle.
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from spotify_wrapped.exceptions import InvalidRequest

ItemT = TypeVar("ItemT")


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ExternalUrls(_UpstreamModel):
    spotify: Optional[str] = None


class Image(_UpstreamModel):
    url: str
    height: Optional[int] = None
    width: Optional[int] = None


class Artist(_UpstreamModel):
    """Full artists carry genres/popularity/images; simplified ones nested in tracks do not."""

    id: str
    name: str
    genres: List[str] = Field(default_factory=list)
    popularity: Optional[int] = None
    external_urls: ExternalUrls = Field(default_factory=ExternalUrls)
    images: List[Image] = Field(default_factory=list)


class Album(_UpstreamModel):
    id: str
    name: str
    album_type: Optional[str] = None
    release_date: Optional[str] = None
    artists: List[Artist] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    external_urls: ExternalUrls = Field(default_factory=ExternalUrls)


class Track(_UpstreamModel):
    id: str
    name: str
    album: Album
    artists: List[Artist] = Field(default_factory=list)
    popularity: Optional[int] = None
    duration_ms: int = Field(default=0, ge=0)
    external_urls: ExternalUrls = Field(default_factory=ExternalUrls)


class UserProfile(_UpstreamModel):
    id: str
    display_name: Optional[str] = None
    images: List[Image] = Field(default_factory=list)
    external_urls: ExternalUrls = Field(default_factory=ExternalUrls)

    @property
    def label(self) -> str:
        return self.display_name or self.id


class TimeRange(str, Enum):
    """Window Spotify computes affinities over."""

    SHORT_TERM = "short_term"  # ~4 weeks
    MEDIUM_TERM = "medium_term"  # ~6 months
    LONG_TERM = "long_term"  # all time

    @classmethod
    def from_string(cls, value: Optional[str]) -> "TimeRange":
        """Accept API values (``short_term``) or enum names (``SHORT_TERM``), case-insensitively."""
        if value is None or not value.strip():
            return cls.MEDIUM_TERM
        candidate = value.strip()
        for member in cls:
            if member.value == candidate.lower() or member.name == candidate.upper():
                return member
        raise InvalidRequest(
            f"Invalid time range: {value}. Valid values are: short_term, medium_term, long_term"
        )


class TopItemsEnvelope(BaseModel, Generic[ItemT]):
    """Labelled, counted, rank-ordered items; ``count`` always equals ``len(items)``."""

    model_config = ConfigDict(frozen=True)

    type: str
    count: int
    items: List[ItemT]

    @classmethod
    def of(cls, label: str, items: Sequence[ItemT]) -> "TopItemsEnvelope[ItemT]":
        materialized = list(items)
        return cls(type=label, count=len(materialized), items=materialized)


class WrappedResponse(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    top_tracks: TopItemsEnvelope[Track]
    top_artists: TopItemsEnvelope[Artist]
    top_albums: TopItemsEnvelope[Album]
    top_genres: TopItemsEnvelope[str]


__all__ = [
    "ExternalUrls",
    "Image",
    "Artist",
    "Album",
    "Track",
    "UserProfile",
    "TimeRange",
    "TopItemsEnvelope",
    "WrappedResponse",
]
