"""Cross-cutting helpers."""

from .session_store import ServerSession, ServerSideSessionInterface, SessionStore

__all__ = ["ServerSession", "ServerSideSessionInterface", "SessionStore"]
