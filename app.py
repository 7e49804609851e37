import os
import logging
import threading
import time
from collections import deque
from datetime import datetime
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Flask specific imports ---
from flask import Flask, abort, send_from_directory, request, g
from flask_cors import CORS
from flask_login import current_user
from werkzeug.middleware.proxy_fix import ProxyFix

# --- Import our configuration and the wiring pieces ---
from config import Config
from spotify_wrapped.auth import init_auth
from spotify_wrapped.infrastructure.spotify import build_default_client
from spotify_wrapped.interfaces.http.errors import error_response, register_error_handlers
from spotify_wrapped.interfaces.http.routes import health_bp, home_bp, spotify_bp
from spotify_wrapped.observability import (
    configure_structured_logging,
    init_tracing,
    install_traffic_logging,
    metrics_blueprint,
    record_rate_limited,
)
from spotify_wrapped.settings import load_spotify_settings
from spotify_wrapped.support import ServerSideSessionInterface, SessionStore


logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = 'X-Correlation-ID'
# Never throttle probes and scrapes
RATE_LIMIT_EXEMPT_PATHS = ('/api/health', '/readyz', '/metrics')


def configure_logging(log_dir: str) -> str:
    """
    Configure root logging with:
      - FileHandler (INFO+) to a new file per run: log-YYYY-MM-DD-HH-MM-SS
      - StreamHandler (WARNING+) to console when ENABLE_CONSOLE_LOGS is set
      - Werkzeug/Flask loggers routed to root (no extra console spam)

    Returns the path to the created log file.
    """
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    log_filename = f"log-{timestamp}"
    log_path = os.path.join(log_dir, log_filename)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if Config.LOG_HTTP_TRAFFIC else logging.INFO)

    # Preserve structured handlers; remove existing FileHandlers to avoid duplicates
    root.handlers = [h for h in root.handlers if not isinstance(h, logging.FileHandler)]

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File: INFO and above
    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG if Config.LOG_HTTP_TRAFFIC else logging.INFO)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if Config.ENABLE_CONSOLE_LOGS:
        console_handler = logging.StreamHandler()
        # If console logging is enabled, keep it concise: warnings and above
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    # Quiet Flask/Werkzeug own console handlers; let them propagate to root
    for name in ("werkzeug", "flask.app"):
        _l = logging.getLogger(name)
        _l.setLevel(logging.INFO)
        _l.handlers = []
        _l.propagate = True

    return log_path


def _client_identifier() -> str:
    if current_user.is_authenticated:
        return f"user:{current_user.get_id()}"
    # Behind a trusted proxy ProxyFix has already rewritten remote_addr from X-Forwarded-For
    return f"ip:{request.remote_addr or 'unknown'}"


def _install_rate_limiter(app):
    rate_limit_state = {
        'lock': threading.RLock(),
        'buckets': {},
        'last_sweep': time.time(),
    }
    app.extensions['rate_limiter'] = rate_limit_state

    def _sweep(now, threshold):
        buckets = rate_limit_state['buckets']
        stale = [key for key, bucket in buckets.items() if not bucket or bucket[-1] <= threshold]
        for key in stale:
            del buckets[key]
        rate_limit_state['last_sweep'] = now

    @app.before_request
    def _apply_rate_limit():
        # Skip rate limiting for CORS preflight
        if request.method == "OPTIONS" or request.path in RATE_LIMIT_EXEMPT_PATHS:
            return None
        limit = app.config['RATE_LIMIT_REQUESTS']
        window = app.config['RATE_LIMIT_WINDOW_SECONDS']
        identifier = _client_identifier()
        now = time.time()
        threshold = now - window
        with rate_limit_state['lock']:
            if now - rate_limit_state['last_sweep'] >= window:
                _sweep(now, threshold)
            buckets = rate_limit_state['buckets']
            bucket = buckets.get(identifier)
            if bucket is None:
                bucket = buckets[identifier] = deque()
            while bucket and bucket[0] <= threshold:
                bucket.popleft()
            if len(bucket) >= limit:
                retry_after = max(1, int(bucket[0] + window - now) + 1)
                record_rate_limited()
                app.logger.warning(
                    "Rate limit exceeded",
                    extra={
                        "policy": "rate_limit",
                        "client": identifier,
                        "retry_after": retry_after,
                    },
                )
                return error_response(
                    429,
                    "Too Many Requests",
                    f"Rate limit exceeded. Try again in {retry_after} seconds.",
                    headers={"Retry-After": str(retry_after), "X-Rate-Limit-Remaining": "0"},
                )
            bucket.append(now)
            g.rate_limit_remaining = limit - len(bucket)
        return None

    @app.after_request
    def _rate_limit_headers(response):
        remaining = getattr(g, 'rate_limit_remaining', None)
        if remaining is not None:
            response.headers.setdefault('X-Rate-Limit-Remaining', str(remaining))
        return response


def _install_security_headers(app):
    csp_policy = app.config.get('CONTENT_SECURITY_POLICY')
    hsts = app.config.get('ENABLE_HSTS', True)

    @app.after_request
    def _apply_security_headers(response):
        if hsts:
            response.headers.setdefault('Strict-Transport-Security', 'max-age=31536000; includeSubDomains')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        response.headers.setdefault('Permissions-Policy', 'geolocation=(), microphone=(), camera=()')
        if csp_policy:
            response.headers.setdefault('Content-Security-Policy', csp_policy)
        return response


def create_app(overrides=None):
    overrides = dict(overrides or {})
    app = Flask(__name__, static_folder=None)
    app.config.from_object(Config)
    app.config.update(overrides)
    if app.config['PROXY_FIX_X_FOR'] > 0:
        # Trust exactly the configured number of proxy hops for client address and scheme
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=app.config['PROXY_FIX_X_FOR'], x_proto=1)
    configure_structured_logging(app)
    init_tracing(app)

    @app.before_request
    def _assign_correlation_id():
        incoming = (request.headers.get(CORRELATION_ID_HEADER) or '').strip()
        g.correlation_id = incoming or str(uuid4())

    @app.after_request
    def _inject_correlation_id(response):
        if getattr(g, 'correlation_id', None):
            response.headers.setdefault(CORRELATION_ID_HEADER, g.correlation_id)
        return response

    allowed_origins = sorted({
        origin.strip()
        for origin in app.config['CORS_ALLOWED_ORIGINS']
        if origin and origin.strip() and origin.strip() != "*"
    })
    CORS(
        app,
        resources={r"/api/*": {"origins": allowed_origins}},
        supports_credentials=True,
        expose_headers=[CORRELATION_ID_HEADER, "Retry-After", "X-Rate-Limit-Remaining"],
    )

    # Server-side session store; the cookie only carries an opaque id
    session_store = SessionStore(
        maxsize=app.config['SESSION_STORE_MAXSIZE'],
        ttl=app.config['SESSION_TTL_SECONDS'],
    )
    app.extensions['session_store'] = session_store
    app.session_interface = ServerSideSessionInterface(session_store)

    # Spotify settings and upstream client wiring; tests swap the factories
    settings = load_spotify_settings(overrides.get('SPOTIFY_SETTINGS'))
    app.extensions['spotify_settings'] = settings
    app.extensions.setdefault('spotify_auth_factory', None)
    app.extensions['spotify_client_factory'] = lambda token: build_default_client(
        token, request_timeout=settings.request_timeout
    )
    if not settings.credentials_ready:
        app.logger.warning("Spotify client ID or secret missing; login is disabled until configured.")

    init_auth(app)

    if (
        app.config['ENABLE_RATE_LIMITING']
        and app.config['RATE_LIMIT_REQUESTS'] > 0
        and app.config['RATE_LIMIT_WINDOW_SECONDS'] > 0
    ):
        _install_rate_limiter(app)

    _install_security_headers(app)

    if app.config.get('LOG_HTTP_TRAFFIC'):
        install_traffic_logging(app)

    register_error_handlers(app)

    # --- Register Blueprints ---
    app.register_blueprint(home_bp)
    app.register_blueprint(spotify_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(metrics_blueprint)

    # --- Catch-all route for serving the dashboard ---
    @app.route('/', defaults={'path': ''})
    @app.route('/<path:path>')
    def serve_dashboard(path):
        if path.startswith('api/'):
            abort(404)
        build_dir = app.config['FRONTEND_BUILD_DIR']
        if path != "" and os.path.exists(os.path.join(build_dir, path)):
            return send_from_directory(build_dir, path)
        return send_from_directory(build_dir, 'index.html')

    return app


if __name__ == '__main__':
    # Configure logging:
    # - In debug with reloader: only in the child process to avoid duplicate files
    # - In non-debug: always configure here
    debug_mode = bool(Config.DEBUG)
    log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'log')
    if debug_mode:
        if os.environ.get('WERKZEUG_RUN_MAIN') == 'true':
            log_file_path = configure_logging(log_dir)
            logger.info("File logging initialized at %s", log_file_path)
    else:
        log_file_path = configure_logging(log_dir)
        logger.info("File logging initialized at %s", log_file_path)

    # Check API credentials at startup
    if not Config.SPOTIPY_CLIENT_ID or not Config.SPOTIPY_CLIENT_SECRET:
        logger.warning("Spotify API client ID or client secret not found in environment variables.")
        logger.warning("Please set SPOTIPY_CLIENT_ID and SPOTIPY_CLIENT_SECRET for full functionality.")

    app = create_app()
    # Route app.logger through root handlers, keep levels consistent
    app.logger.handlers = []
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = True
    logger.info("Starting Flask application...")
    # Threaded: each browser request is handled on its own thread
    app.run(debug=Config.DEBUG, host='0.0.0.0', port=Config.PORT, threaded=True)
