#!/usr/bin/env python
"""
Centralized Spotify client settings.

Merges defaults from config.Config with runtime overrides and validates the
values the OAuth manager and the upstream API client are built from.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import Config

REQUIRED_SCOPE = "user-top-read"
MAX_LIMIT = 50


def _parse_scopes(value: Optional[object]) -> List[str]:
    """Normalize scope configuration into a unique ordered list."""
    if value is None:
        tokens: List[str] = []
    elif isinstance(value, str):
        tokens = value.replace(",", " ").split()
    elif isinstance(value, (list, tuple, set)):
        tokens = [str(token).strip() for token in value]
    else:
        tokens = [str(value).strip()]

    normalized: List[str] = []
    for token in tokens:
        key = token.strip().lower()
        if key and key not in normalized:
            normalized.append(key)
    # Top items endpoints are unusable without this scope
    if REQUIRED_SCOPE not in normalized:
        normalized.append(REQUIRED_SCOPE)
    return normalized


class SpotifySettings(BaseModel):
    """OAuth and upstream client settings."""

    model_config = ConfigDict(extra="ignore")

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: str = "http://127.0.0.1:5000/login/oauth2/code/spotify"
    scopes: List[str] = Field(default_factory=lambda: [REQUIRED_SCOPE])
    show_dialog: bool = False
    request_timeout: float = 10.0

    default_limit: int = 5
    max_limit: int = MAX_LIMIT

    @field_validator("scopes", mode="before")
    @classmethod
    def _normalize_scopes(cls, value: Optional[object]) -> List[str]:
        return _parse_scopes(value)

    @field_validator("max_limit", mode="before")
    @classmethod
    def _coerce_max_limit(cls, value: object) -> int:
        try:
            limit = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return MAX_LIMIT
        return max(1, min(limit, MAX_LIMIT))

    @field_validator("default_limit", mode="before")
    @classmethod
    def _coerce_default_limit(cls, value: object) -> int:
        try:
            limit = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 5
        return max(1, min(limit, MAX_LIMIT))

    @field_validator("request_timeout", mode="before")
    @classmethod
    def _coerce_timeout(cls, value: object) -> float:
        try:
            timeout = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 10.0
        return timeout if timeout > 0 else 10.0

    @model_validator(mode="after")
    def _default_within_max(self) -> "SpotifySettings":
        if self.default_limit > self.max_limit:
            self.default_limit = self.max_limit
        return self

    @property
    def credentials_ready(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)


def load_spotify_settings(overrides: Optional[Dict[str, Any]] = None) -> SpotifySettings:
    """Load settings merging config defaults with optional runtime overrides."""
    data: Dict[str, Any] = {
        "client_id": Config.SPOTIPY_CLIENT_ID,
        "client_secret": Config.SPOTIPY_CLIENT_SECRET,
        "redirect_uri": Config.SPOTIPY_REDIRECT_URI,
        "scopes": Config.SPOTIFY_SCOPES,
        "show_dialog": Config.SPOTIFY_SHOW_DIALOG,
        "request_timeout": Config.SPOTIFY_REQUEST_TIMEOUT_SECONDS,
        "default_limit": Config.DEFAULT_LIMIT,
        "max_limit": Config.MAX_LIMIT,
    }
    if overrides:
        data.update(overrides)
    return SpotifySettings.model_validate(data)


__all__ = [
    "SpotifySettings",
    "load_spotify_settings",
    "REQUIRED_SCOPE",
]
