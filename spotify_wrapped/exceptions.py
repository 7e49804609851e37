#!/usr/bin/env python
"""Error kinds surfaced to the browser as the standard error body."""

from __future__ import annotations

from typing import Dict, Optional


class WrappedApiError(Exception):
    """Base class for errors rendered as ``{status, error, message, path, timestamp}``."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, *, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        # Name of the upstream call that failed, when there is one
        self.operation = operation

    def headers(self) -> Dict[str, str]:
        return {}


class Unauthenticated(WrappedApiError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, message: str = "Authentication required. Please log in with Spotify.", **kwargs) -> None:
        super().__init__(message, **kwargs)


class UpstreamAuthFailure(WrappedApiError):
    status_code = 401
    error = "Authentication failed"


class UpstreamRateLimited(WrappedApiError):
    status_code = 429
    error = "Too Many Requests"

    def __init__(self, message: str, *, retry_after: Optional[int] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    def headers(self) -> Dict[str, str]:
        if self.retry_after is None:
            return {}
        return {"Retry-After": str(self.retry_after)}


class UpstreamUnavailable(WrappedApiError):
    status_code = 503
    error = "Service Unavailable"


class UpstreamError(WrappedApiError):
    status_code = 502
    error = "Spotify API error"


class InvalidRequest(WrappedApiError):
    status_code = 400
    error = "Bad Request"


__all__ = [
    "WrappedApiError",
    "Unauthenticated",
    "UpstreamAuthFailure",
    "UpstreamRateLimited",
    "UpstreamUnavailable",
    "UpstreamError",
    "InvalidRequest",
]
