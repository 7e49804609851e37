#!/usr/bin/env python
# config.py
import os
from typing import List

# This assumes config.py is at the root of your project
basedir = os.path.abspath(os.path.dirname(__file__))


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _get_csv_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name)
    source = raw if raw is not None else default
    return [token.strip() for token in source.split(",") if token and token.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-me-in-production'

    # Spotify OAuth client
    SPOTIPY_CLIENT_ID = os.environ.get('SPOTIPY_CLIENT_ID')
    SPOTIPY_CLIENT_SECRET = os.environ.get('SPOTIPY_CLIENT_SECRET')
    SPOTIPY_REDIRECT_URI = os.getenv(
        'SPOTIPY_REDIRECT_URI', 'http://127.0.0.1:5000/login/oauth2/code/spotify'
    )
    SPOTIFY_SCOPES = _get_csv_list('SPOTIFY_SCOPES', 'user-read-private,user-read-email,user-top-read')
    # Force the consent screen so users can switch accounts after logout
    SPOTIFY_SHOW_DIALOG = _get_bool('SPOTIFY_SHOW_DIALOG', False)
    SPOTIFY_REQUEST_TIMEOUT_SECONDS = _get_float('SPOTIFY_REQUEST_TIMEOUT_SECONDS', 10.0)

    # Top items query defaults (Spotify caps page size at 50)
    DEFAULT_LIMIT = _get_int('DEFAULT_LIMIT', 5)
    MAX_LIMIT = 50

    # Server-side sessions
    SESSION_COOKIE_NAME = os.getenv('SESSION_COOKIE_NAME', 'wrapped_session')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = _get_bool('SESSION_COOKIE_SECURE', False)
    SESSION_TTL_SECONDS = _get_int('SESSION_TTL_SECONDS', 3600)
    SESSION_STORE_MAXSIZE = max(1, _get_int('SESSION_STORE_MAXSIZE', 10000))

    # Where the browser lands after login/logout
    FRONTEND_URL = os.getenv('FRONTEND_URL', '/')
    LOGOUT_REDIRECT_URL = os.getenv('LOGOUT_REDIRECT_URL', '/')
    FRONTEND_BUILD_DIR = os.getenv('FRONTEND_BUILD_DIR', os.path.join(basedir, 'frontend', 'build'))

    # HTTP policies
    CORS_ALLOWED_ORIGINS = _get_csv_list('CORS_ALLOWED_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173')
    ENABLE_RATE_LIMITING = _get_bool('ENABLE_RATE_LIMITING', True)
    RATE_LIMIT_REQUESTS = _get_int('RATE_LIMIT_REQUESTS', 100)
    RATE_LIMIT_WINDOW_SECONDS = _get_int('RATE_LIMIT_WINDOW_SECONDS', 60)
    # Number of reverse proxies allowed to set X-Forwarded-For; 0 trusts none
    PROXY_FIX_X_FOR = max(0, _get_int('PROXY_FIX_X_FOR', 0))
    CONTENT_SECURITY_POLICY = os.getenv(
        'CONTENT_SECURITY_POLICY',
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data: https:; "
        "font-src 'self' data:; "
        "connect-src 'self' https://api.spotify.com https://accounts.spotify.com",
    )
    ENABLE_HSTS = _get_bool('ENABLE_HSTS', True)

    # Observability
    OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    OTEL_EXPORTER_OTLP_HEADERS = os.getenv('OTEL_EXPORTER_OTLP_HEADERS')
    OTEL_EXPORTER_OTLP_INSECURE = _get_bool('OTEL_EXPORTER_OTLP_INSECURE', True)
    OTEL_SERVICE_NAME = os.getenv('OTEL_SERVICE_NAME', 'spotify-wrapped')
    # Dump request/response lines at DEBUG (development only)
    LOG_HTTP_TRAFFIC = _get_bool('LOG_HTTP_TRAFFIC', False)

    # Runtime behavior
    # Turn Flask debug on/off from env; default off to avoid noisy console
    DEBUG = _get_bool('DEBUG', False)
    # Control console logging; when disabled, logs go only to file
    ENABLE_CONSOLE_LOGS = _get_bool('ENABLE_CONSOLE_LOGS', False)
    PORT = _get_int('PORT', 5000)
