from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from spotify_wrapped.interfaces.http.errors import utc_timestamp

health_bp = Blueprint("health_bp", __name__)


@health_bp.route("/api/health")
def health():
    return jsonify({"status": "UP", "timestamp": utc_timestamp()}), 200


@health_bp.route("/readyz")
def readyz():
    settings = current_app.extensions.get("spotify_settings")
    ready = bool(settings and settings.credentials_ready)
    store = current_app.extensions.get("session_store")
    payload = {
        "status": "ready" if ready else "blocked",
        "checks": {
            "spotify_credentials": "ok" if ready else "missing",
            "active_sessions": len(store) if store is not None else 0,
        },
    }
    return jsonify(payload), 200 if ready else 503
