from __future__ import annotations

from typing import Optional

from flask import Blueprint, Response
from prometheus_client import Counter, Histogram, generate_latest

metrics_blueprint = Blueprint("metrics_bp", __name__)

CONTENT_TYPE_LATEST = "text/plain; version=0.0.4; charset=utf-8"

UPSTREAM_CALLS = Counter(
    "wrapped_upstream_calls_total",
    "Total number of Spotify Web API calls, by call and outcome.",
    labelnames=("call", "outcome"),
)
UPSTREAM_LATENCY = Histogram(
    "wrapped_upstream_call_seconds",
    "Latency of individual Spotify Web API calls.",
    labelnames=("call",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, float("inf")),
)
LOGIN_ATTEMPTS = Counter(
    "wrapped_login_attempts_total",
    "OAuth callback outcomes.",
    labelnames=("outcome",),
)
RATE_LIMITED_REQUESTS = Counter(
    "wrapped_rate_limited_requests_total",
    "Requests rejected by the in-process rate limiter.",
)


def record_upstream_call(call: str, outcome: str, duration_seconds: Optional[float] = None) -> None:
    UPSTREAM_CALLS.labels(call=call, outcome=outcome).inc()
    if duration_seconds is not None:
        UPSTREAM_LATENCY.labels(call=call).observe(duration_seconds)


def record_login(outcome: str) -> None:
    LOGIN_ATTEMPTS.labels(outcome=outcome).inc()


def record_rate_limited() -> None:
    RATE_LIMITED_REQUESTS.inc()


@metrics_blueprint.route("/metrics")
def metrics_endpoint() -> Response:
    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
