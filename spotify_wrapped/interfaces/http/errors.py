"""Render every error as ``{status, error, message, path, timestamp}``."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from spotify_wrapped.exceptions import WrappedApiError

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_response(status: int, error: str, message: str, headers: Optional[Dict[str, str]] = None):
    body = {
        "status": status,
        "error": error,
        "message": message,
        "path": request.path,
        "timestamp": utc_timestamp(),
    }
    response = jsonify(body)
    response.status_code = status
    for name, value in (headers or {}).items():
        response.headers[name] = value
    return response


def register_error_handlers(app) -> None:
    @app.errorhandler(WrappedApiError)
    def _handle_wrapped_error(exc: WrappedApiError):
        if exc.status_code >= 500:
            logger.error("%s: %s (call=%s)", exc.error, exc.message, exc.operation)
        else:
            logger.warning("%s: %s (call=%s)", exc.error, exc.message, exc.operation)
        return error_response(exc.status_code, exc.error, exc.message, exc.headers())

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        return error_response(exc.code or 500, exc.name, exc.description or exc.name)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        logger.error("Unexpected error: %s", exc, exc_info=True)
        return error_response(
            500,
            "Internal server error",
            "An unexpected error occurred. Please try again later.",
        )


__all__ = ["register_error_handlers", "error_response", "utc_timestamp"]
