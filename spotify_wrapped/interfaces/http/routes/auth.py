#!/usr/bin/env python
"""OAuth2 login round trip and logout."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, redirect, request, session
from flask_login import current_user, login_user, logout_user

from spotify_wrapped.auth import remember_profile
from spotify_wrapped.auth.oauth import begin_authorization, complete_authorization
from spotify_wrapped.exceptions import WrappedApiError
from spotify_wrapped.observability.metrics import record_login

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/oauth2/authorization/spotify", methods=["GET"])
def authorize():
    return redirect(begin_authorization(), code=302)


@auth_bp.route("/login/oauth2/code/spotify", methods=["GET"])
def callback():
    try:
        token_info = complete_authorization(request.args)
        client = current_app.extensions["spotify_client_factory"](token_info["access_token"])
        profile = client.current_user()
    except WrappedApiError:
        record_login("failure")
        raise

    # New privilege level, new session id
    rotate = getattr(session, "rotate", None)
    if rotate is not None:
        rotate()
    login_user(remember_profile(profile))
    record_login("success")
    logger.info("User %s logged in with Spotify", profile.id)
    return redirect(current_app.config["FRONTEND_URL"], code=302)


@auth_bp.route("/logout", methods=["GET", "POST"])
def logout():
    if current_user.is_authenticated:
        logger.info("User %s logged out", current_user.get_id())
        logout_user()
    session.clear()
    return redirect(current_app.config["LOGOUT_REDIRECT_URL"], code=302)


__all__ = ["auth_bp"]
