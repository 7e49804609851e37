#!/usr/bin/env python
"""Authentication utilities and Flask-Login integration."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import session
from flask_login import LoginManager, UserMixin

from spotify_wrapped.exceptions import Unauthenticated
from spotify_wrapped.models.dto import UserProfile

PROFILE_KEY = "spotify_profile"

login_manager = LoginManager()
login_manager.session_protection = "strong"
login_manager.login_message = None


class SpotifyUser(UserMixin):
    """Logged-in Spotify account, rebuilt from the session on each request."""

    def __init__(self, profile: Dict[str, Any]):
        self.profile = profile
        self.id = profile["id"]

    @property
    def display_name(self) -> str:
        return self.profile.get("display_name") or self.id


def remember_profile(profile: UserProfile) -> SpotifyUser:
    """Store the ``/me`` payload in the session and return the Flask-Login user."""
    data = profile.model_dump(mode="json")
    session[PROFILE_KEY] = data
    return SpotifyUser(data)


def init_auth(app):
    """Attach Flask-Login to the Flask app and register auth blueprints."""
    from spotify_wrapped.interfaces.http.routes.auth import auth_bp

    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[SpotifyUser]:
        profile = session.get(PROFILE_KEY)
        if not profile or profile.get("id") != user_id:
            return None
        return SpotifyUser(profile)

    @login_manager.unauthorized_handler
    def _unauthorized():
        raise Unauthenticated()

    app.register_blueprint(auth_bp)

    return login_manager


__all__ = ["login_manager", "init_auth", "SpotifyUser", "remember_profile", "PROFILE_KEY"]
