#!/usr/bin/env python
"""
Spotify OAuth2 authorization-code flow bound to the Flask session.

The redirect round trip is two independent handlers (authorize and callback)
joined only by the session: the authorize step stores a random ``state``, the
callback checks it and lets spotipy store the token info in the same session.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Callable, Dict, Optional

import requests
from flask import current_app, session
from spotipy.cache_handler import CacheHandler, FlaskSessionCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from spotify_wrapped.exceptions import Unauthenticated, UpstreamAuthFailure, UpstreamUnavailable
from spotify_wrapped.settings import SpotifySettings

logger = logging.getLogger(__name__)

OAUTH_STATE_KEY = "oauth_state"

AuthManagerFactory = Callable[[SpotifySettings, CacheHandler], Any]


def build_auth_manager(settings: SpotifySettings, cache_handler: CacheHandler) -> SpotifyOAuth:
    return SpotifyOAuth(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        redirect_uri=settings.redirect_uri,
        scope=settings.scope,
        cache_handler=cache_handler,
        show_dialog=settings.show_dialog,
        requests_timeout=settings.request_timeout,
    )


def _settings() -> SpotifySettings:
    return current_app.extensions["spotify_settings"]


def get_auth_manager():
    """Auth manager whose token cache is the current user's session."""
    factory: AuthManagerFactory = current_app.extensions.get("spotify_auth_factory") or build_auth_manager
    return factory(_settings(), FlaskSessionCacheHandler(session))


def begin_authorization() -> str:
    """Store a fresh ``state`` in the session and return the consent-screen URL."""
    if not _settings().credentials_ready:
        raise UpstreamUnavailable("Spotify login is not configured on this server.")
    state = secrets.token_urlsafe(24)
    session[OAUTH_STATE_KEY] = state
    return get_auth_manager().get_authorize_url(state=state)


def complete_authorization(args) -> Dict[str, Any]:
    """Validate the callback query and exchange the code; tokens land in the session."""
    expected_state = session.pop(OAUTH_STATE_KEY, None)
    if args.get("error"):
        logger.warning("Spotify denied authorization: %s", args.get("error"))
        raise UpstreamAuthFailure("Spotify authorization was denied or cancelled.")
    received_state = args.get("state")
    if not expected_state or not received_state or not secrets.compare_digest(expected_state, received_state):
        logger.warning("OAuth callback state mismatch")
        raise UpstreamAuthFailure("Authentication failed: invalid or expired login attempt. Please try again.")
    code = args.get("code")
    if not code:
        raise UpstreamAuthFailure("Authentication failed: missing authorization code.")

    manager = get_auth_manager()
    try:
        manager.get_access_token(code, as_dict=False, check_cache=False)
    except SpotifyOauthError as exc:
        logger.warning("Spotify rejected the authorization code: %s", exc)
        raise UpstreamAuthFailure("Authentication with Spotify failed. Please log in again.") from exc
    except (requests.ConnectionError, requests.Timeout) as exc:
        logger.warning("Could not reach Spotify accounts service: %s", exc)
        raise UpstreamUnavailable("Could not reach Spotify to complete login. Please retry.") from exc

    token_info = manager.cache_handler.get_cached_token()
    if not token_info or not token_info.get("access_token"):
        raise UpstreamAuthFailure("Authentication with Spotify failed: no access token issued.")
    return token_info


def current_access_token() -> str:
    """Access token for the session's user, refreshed through spotipy when expired."""
    manager = get_auth_manager()
    token_info: Optional[Dict[str, Any]] = manager.cache_handler.get_cached_token()
    if not token_info:
        raise Unauthenticated("No access token available. Please re-authenticate.")
    try:
        token_info = manager.validate_token(token_info)
    except SpotifyOauthError as exc:
        logger.warning("Spotify rejected the token refresh: %s", exc)
        raise UpstreamAuthFailure("Your Spotify authorization could not be refreshed. Please log in again.") from exc
    except (requests.ConnectionError, requests.Timeout) as exc:
        logger.warning("Could not reach Spotify to refresh token: %s", exc)
        raise UpstreamUnavailable("Could not reach Spotify to refresh your login. Please retry.") from exc
    if not token_info or not token_info.get("access_token"):
        raise Unauthenticated("No access token available. Please re-authenticate.")
    return token_info["access_token"]


__all__ = [
    "OAUTH_STATE_KEY",
    "build_auth_manager",
    "get_auth_manager",
    "begin_authorization",
    "complete_authorization",
    "current_access_token",
]
