"""Optional OpenTelemetry tracing for inbound Flask requests and outbound Spotify calls."""

import os
import threading

from flask import Flask

from spotify_wrapped import __version__

try:
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.flask import FlaskInstrumentor
    from opentelemetry.instrumentation.requests import RequestsInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
except Exception:  # pragma: no cover - optional dependency
    FlaskInstrumentor = None  # type: ignore
    Resource = None  # type: ignore

# Probes and scrapes would drown real traffic in the trace backend
UNTRACED_URLS = "api/health,readyz,metrics"

_requests_lock = threading.Lock()
_requests_instrumented = False


def otlp_endpoint(app: Flask):
    return app.config.get("OTEL_EXPORTER_OTLP_ENDPOINT") or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")


def build_resource(app: Flask):
    """Resource shared by the trace and log exporters."""
    return Resource.create(
        {
            "service.name": app.config.get("OTEL_SERVICE_NAME") or "spotify-wrapped",
            "service.version": __version__,
            "deployment.environment": "development" if app.config.get("DEBUG") else "production",
        }
    )


def _instrument_requests_once() -> None:
    # spotipy talks to Spotify through requests; instrumenting twice double-wraps Session.send
    global _requests_instrumented
    with _requests_lock:
        if not _requests_instrumented:
            RequestsInstrumentor().instrument()
            _requests_instrumented = True


def init_tracing(app: Flask) -> bool:
    """Export spans over OTLP when an endpoint is configured; returns whether tracing is on."""
    if FlaskInstrumentor is None:  # pragma: no cover - optional dependency
        return False
    endpoint = otlp_endpoint(app)
    if not endpoint:
        return False

    provider = TracerProvider(resource=build_resource(app))
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=endpoint,
                headers=app.config.get("OTEL_EXPORTER_OTLP_HEADERS") or os.getenv("OTEL_EXPORTER_OTLP_HEADERS"),
                insecure=app.config.get("OTEL_EXPORTER_OTLP_INSECURE", True),
            )
        )
    )
    trace.set_tracer_provider(provider)
    app.extensions["tracer_provider"] = provider

    FlaskInstrumentor().instrument_app(app, excluded_urls=UNTRACED_URLS)
    _instrument_requests_once()
    app.logger.info("OpenTelemetry tracing exporting to %s", endpoint)
    return True
