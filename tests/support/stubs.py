"""Shared test stubs for the Spotify OAuth manager and Spotipy client."""

import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOauthError

from tests.support import payloads

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"


def state_from_location(location: str) -> Optional[str]:
    """Pull the ``state`` query value out of an authorize redirect."""
    values = parse_qs(urlparse(location).query).get("state")
    return values[0] if values else None


class FakeAuthManager:
    """Stands in for SpotifyOAuth; writes tokens through the real session cache handler."""

    def __init__(self, settings, cache_handler, *, refresh_error: Optional[Exception] = None,
                 exchange_error: Optional[Exception] = None):
        self.settings = settings
        self.cache_handler = cache_handler
        self.refresh_error = refresh_error
        self.exchange_error = exchange_error

    def get_authorize_url(self, state=None):
        query = {
            "client_id": self.settings.client_id,
            "response_type": "code",
            "redirect_uri": self.settings.redirect_uri,
            "scope": self.settings.scope,
        }
        if state is not None:
            query["state"] = state
        return f"{AUTHORIZE_URL}?{urlencode(query)}"

    def get_access_token(self, code=None, as_dict=True, check_cache=True):
        if self.exchange_error is not None:
            raise self.exchange_error
        if code == "bad-code":
            raise SpotifyOauthError("invalid_grant", error="invalid_grant",
                                    error_description="Invalid authorization code")
        token_info = {
            "access_token": f"access-{code}",
            "refresh_token": f"refresh-{code}",
            "token_type": "Bearer",
            "scope": self.settings.scope,
            "expires_in": 3600,
            "expires_at": int(time.time()) + 3600,
        }
        self.cache_handler.save_token_to_cache(token_info)
        return token_info if as_dict else token_info["access_token"]

    def validate_token(self, token_info):
        if self.refresh_error is not None:
            raise self.refresh_error
        return token_info


class SpotipyStub:
    """Minimal spotipy.Spotify replacement with canned payloads and optional failures."""

    def __init__(self, tracks=None, artists=None, profile=None, errors: Optional[Dict[str, Exception]] = None):
        self.tracks = tracks if tracks is not None else payloads.track_page()
        self.artists = artists if artists is not None else payloads.artist_page()
        self.profile = profile if profile is not None else payloads.profile()
        self.errors = dict(errors or {})
        self.calls = []

    def _maybe_fail(self, name: str) -> None:
        error = self.errors.get(name)
        if error is not None:
            raise error

    def current_user(self):
        self.calls.append(("current_user", {}))
        self._maybe_fail("current_user")
        return self.profile

    def current_user_top_tracks(self, limit=20, offset=0, time_range="medium_term"):
        self.calls.append(("top_tracks", {"limit": limit, "offset": offset, "time_range": time_range}))
        self._maybe_fail("top_tracks")
        return self._page(self.tracks, limit)

    def current_user_top_artists(self, limit=20, offset=0, time_range="medium_term"):
        self.calls.append(("top_artists", {"limit": limit, "offset": offset, "time_range": time_range}))
        self._maybe_fail("top_artists")
        return self._page(self.artists, limit)

    @staticmethod
    def _page(page: Any, limit: int):
        if isinstance(page, dict) and isinstance(page.get("items"), list):
            return dict(page, items=page["items"][:limit])
        return page


def spotify_http_error(status: int, headers: Optional[Dict[str, str]] = None) -> SpotifyException:
    return SpotifyException(status, -1, f"HTTP {status}", headers=headers or {})
