"""Structured JSON logs tagged with the request they belong to."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import g, has_request_context, request

from .tracing import build_resource, otlp_endpoint

try:
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
except Exception:  # pragma: no cover - Opentelemetry optional
    LoggerProvider = None  # type: ignore
    LoggingHandler = None  # type: ignore

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie"}
MAX_PAYLOAD_LENGTH = 10000

# `extra=` keys worth keeping in the JSON line
EXTRA_FIELDS = ("call", "outcome", "client", "policy", "retry_after", "status")


class RequestContextFilter(logging.Filter):
    """Attach correlation id, route and signed-in user to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = None
        record.path = None
        record.method = None
        record.remote_addr = None
        record.user_id = None
        if has_request_context():
            record.correlation_id = getattr(g, "correlation_id", None)
            record.path = request.path
            record.method = request.method
            record.remote_addr = request.remote_addr
            # Only read a user Flask-Login already loaded; never trigger a load from a log call
            user = g.get("_login_user")
            if user is not None and user.is_authenticated:
                record.user_id = user.get_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("correlation_id", "method", "path", "remote_addr", "user_id"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_otlp_handler(app) -> Optional[logging.Handler]:
    if LoggerProvider is None or LoggingHandler is None:
        return None
    endpoint = otlp_endpoint(app)
    if not endpoint:
        return None
    provider = LoggerProvider(resource=build_resource(app))
    provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint)))
    return LoggingHandler(level=logging.INFO, logger_provider=provider)


def configure_structured_logging(app) -> None:
    """Route the root logger to stdout as JSON, plus OTLP when configured.

    Safe to call once per app: handlers are only added when missing.
    """
    root = logging.getLogger()
    context_filter = RequestContextFilter()

    if not any(isinstance(h.formatter, JsonFormatter) for h in root.handlers if isinstance(h, logging.StreamHandler)):
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(JsonFormatter())
        stream_handler.addFilter(context_filter)
        root.addHandler(stream_handler)

    if LoggingHandler is not None and any(isinstance(h, LoggingHandler) for h in root.handlers):
        return
    otlp_handler = _build_otlp_handler(app)
    if otlp_handler:
        otlp_handler.addFilter(context_filter)
        root.addHandler(otlp_handler)


def redact_headers(headers) -> Dict[str, str]:
    return {
        name: ("[REDACTED]" if name.lower() in SENSITIVE_HEADERS else value)
        for name, value in headers.items()
    }


def truncate_payload(body: str) -> str:
    if len(body) > MAX_PAYLOAD_LENGTH:
        return body[:MAX_PAYLOAD_LENGTH] + "... [TRUNCATED]"
    return body


def install_traffic_logging(app) -> None:
    """Log request and response lines at DEBUG; sensitive headers are redacted."""
    traffic_logger = logging.getLogger("spotify_wrapped.http")

    @app.before_request
    def _log_request():
        if not traffic_logger.isEnabledFor(logging.DEBUG):
            return None
        traffic_logger.debug(
            "HTTP request %s %s query=%s headers=%s",
            request.method,
            request.path,
            request.query_string.decode("utf-8", "replace") or None,
            redact_headers(request.headers),
        )
        return None

    @app.after_request
    def _log_response(response):
        if not traffic_logger.isEnabledFor(logging.DEBUG):
            return response
        body = ""
        if not response.direct_passthrough and response.mimetype == "application/json":
            body = truncate_payload(response.get_data(as_text=True))
        traffic_logger.debug(
            "HTTP response %s %s status=%s headers=%s body=%s",
            request.method,
            request.path,
            response.status_code,
            redact_headers(response.headers),
            body,
        )
        return response
