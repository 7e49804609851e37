"""DTOs exchanged between the upstream client, the aggregation service and the API."""

from .dto import (
    Album,
    Artist,
    ExternalUrls,
    Image,
    TimeRange,
    TopItemsEnvelope,
    Track,
    UserProfile,
    WrappedResponse,
)

__all__ = [
    "Album",
    "Artist",
    "ExternalUrls",
    "Image",
    "TimeRange",
    "TopItemsEnvelope",
    "Track",
    "UserProfile",
    "WrappedResponse",
]
