#!/usr/bin/env python
"""
Thin wrapper over spotipy bound to one user's access token.

Each call is a live upstream request: no caching, no retries. Spotify HTTP
errors are translated into the error kinds the API layer renders.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests
import spotipy
from pydantic import ValidationError
from spotipy.exceptions import SpotifyException

from spotify_wrapped.exceptions import (
    Unauthenticated,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamUnavailable,
    WrappedApiError,
)
from spotify_wrapped.models.dto import Artist, TimeRange, Track, UserProfile
from spotify_wrapped.observability.metrics import record_upstream_call

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _parse_retry_after(headers: Optional[Dict[str, str]]) -> Optional[int]:
    if not headers:
        return None
    raw = headers.get("Retry-After") or headers.get("retry-after")
    if raw is None:
        return None
    try:
        return max(0, int(float(raw)))
    except (TypeError, ValueError):
        return None


def translate_spotify_error(exc: SpotifyException, call: str) -> WrappedApiError:
    """Map a spotipy HTTP error onto the error kind the browser sees."""
    status = exc.http_status
    if status == 401:
        return Unauthenticated(
            "Your Spotify session has expired. Please log in again.", operation=call
        )
    if status == 429:
        retry_after = _parse_retry_after(exc.headers)
        message = f"Spotify rate limit reached while fetching {call}."
        if retry_after is not None:
            message += f" Try again in {retry_after} seconds."
        return UpstreamRateLimited(message, retry_after=retry_after, operation=call)
    if status is not None and status >= 500:
        return UpstreamUnavailable(
            f"Spotify is unavailable while fetching {call} (HTTP {status}).", operation=call
        )
    return UpstreamError(
        f"Failed to fetch {call} from Spotify API (HTTP {status}).", operation=call
    )


class SpotifyApiClient:
    """Upstream client for the signed-in user's profile and top items."""

    def __init__(self, access_token: Optional[str] = None, *, request_timeout: float = 10.0,
                 spotify_client=None):
        if spotify_client is not None:
            self.sp = spotify_client
        else:
            if not access_token:
                raise Unauthenticated()
            # A bare session skips spotipy's urllib3 retry adapter, so a 429 reaches
            # us with its Retry-After header instead of being retried silently.
            self.sp = spotipy.Spotify(
                auth=access_token,
                requests_session=requests.Session(),
                requests_timeout=request_timeout,
            )

    def _call(self, call: str, fn: Callable[[], T]) -> T:
        started = time.perf_counter()
        try:
            result = fn()
        except SpotifyException as exc:
            record_upstream_call(call, f"http_{exc.http_status}", time.perf_counter() - started)
            logger.warning(
                "Spotify call %s failed with HTTP %s: %s", call, exc.http_status, exc.msg,
                extra={"call": call, "status": exc.http_status},
            )
            raise translate_spotify_error(exc, call) from exc
        except (requests.ConnectionError, requests.Timeout) as exc:
            record_upstream_call(call, "network_error", time.perf_counter() - started)
            logger.warning(
                "Spotify call %s failed to reach upstream: %s", call, exc,
                extra={"call": call, "outcome": "network_error"},
            )
            raise UpstreamUnavailable(
                f"Could not reach Spotify while fetching {call}. Please retry.", operation=call
            ) from exc
        record_upstream_call(call, "ok", time.perf_counter() - started)
        return result

    @staticmethod
    def _items(payload: Any, call: str) -> List[Dict[str, Any]]:
        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            raise UpstreamError(f"Failed to retrieve {call}: empty response", operation=call)
        return payload["items"]

    def current_user(self) -> UserProfile:
        payload = self._call("user profile", self.sp.current_user)
        try:
            return UserProfile.model_validate(payload)
        except ValidationError as exc:
            raise UpstreamError("Spotify returned an invalid user profile.", operation="user profile") from exc

    def top_tracks(self, limit: int, time_range: TimeRange = TimeRange.MEDIUM_TERM) -> List[Track]:
        logger.debug("Fetching top %s tracks (%s)", limit, time_range.value)
        payload = self._call(
            "top tracks",
            lambda: self.sp.current_user_top_tracks(limit=limit, offset=0, time_range=time_range.value),
        )
        try:
            return [Track.model_validate(item) for item in self._items(payload, "top tracks")]
        except ValidationError as exc:
            raise UpstreamError("Spotify returned malformed top tracks.", operation="top tracks") from exc

    def top_artists(self, limit: int, time_range: TimeRange = TimeRange.MEDIUM_TERM) -> List[Artist]:
        logger.debug("Fetching top %s artists (%s)", limit, time_range.value)
        payload = self._call(
            "top artists",
            lambda: self.sp.current_user_top_artists(limit=limit, offset=0, time_range=time_range.value),
        )
        try:
            return [Artist.model_validate(item) for item in self._items(payload, "top artists")]
        except ValidationError as exc:
            raise UpstreamError("Spotify returned malformed top artists.", operation="top artists") from exc


def build_default_client(access_token: str, request_timeout: float = 10.0) -> SpotifyApiClient:
    return SpotifyApiClient(access_token, request_timeout=request_timeout)


__all__ = ["SpotifyApiClient", "build_default_client", "translate_spotify_error"]
