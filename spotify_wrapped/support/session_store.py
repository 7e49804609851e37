"""Server-side session storage keyed by an opaque cookie value."""

from __future__ import annotations

import copy
import logging
import secrets
import time
from collections import OrderedDict
from threading import RLock
from typing import Any, Dict, Optional, Tuple

from flask.sessions import SessionInterface, SessionMixin
from werkzeug.datastructures import CallbackDict

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore:
    """Thread-safe in-memory session map with sliding TTL and LRU eviction.

    Entries stay ordered by expiry: every write or touch moves the key to the
    end, so expired records are always at the front. Readers get a copy.
    """

    def __init__(self, maxsize: int = 10000, ttl: float = 3600.0) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.maxsize = maxsize
        self.ttl = ttl
        self._data: "OrderedDict[str, Tuple[Dict[str, Any], float]]" = OrderedDict()
        self._lock = RLock()

    def _evict_expired(self, now: float) -> None:
        evicted = 0
        while self._data:
            _, (_, expiry) = next(iter(self._data.items()))
            if expiry > now:
                break
            self._data.popitem(last=False)
            evicted += 1
        if evicted:
            logger.debug("Expired %s idle sessions", evicted)

    def get(self, sid: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            now = time.time()
            self._evict_expired(now)
            entry = self._data.get(sid)
            if entry is None:
                return None
            return copy.deepcopy(entry[0])

    def set(self, sid: str, data: Dict[str, Any]) -> None:
        with self._lock:
            now = time.time()
            self._evict_expired(now)
            self._data[sid] = (copy.deepcopy(data), now + self.ttl)
            self._data.move_to_end(sid)
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)

    def replace(self, sid: str, data: Dict[str, Any]) -> bool:
        """Overwrite an existing record; returns False when ``sid`` is gone."""
        with self._lock:
            now = time.time()
            self._evict_expired(now)
            if sid not in self._data:
                return False
            self._data[sid] = (copy.deepcopy(data), now + self.ttl)
            self._data.move_to_end(sid)
            return True

    def touch(self, sid: str) -> bool:
        """Slide the expiry of an existing record; never recreates a missing one."""
        with self._lock:
            now = time.time()
            self._evict_expired(now)
            entry = self._data.get(sid)
            if entry is None:
                return False
            self._data[sid] = (entry[0], now + self.ttl)
            self._data.move_to_end(sid)
            return True

    def delete(self, sid: Optional[str]) -> None:
        if not sid:
            return
        with self._lock:
            self._data.pop(sid, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, sid: str) -> bool:
        with self._lock:
            self._evict_expired(time.time())
            return sid in self._data

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired(time.time())
            return len(self._data)


class ServerSession(CallbackDict, SessionMixin):
    """Flask session whose contents live in a :class:`SessionStore`."""

    def __init__(self, initial=None, sid: Optional[str] = None, new: bool = False):
        def on_update(self):
            self.modified = True
            self.accessed = True

        super().__init__(initial, on_update)
        self.sid = sid or new_session_id()
        self.new = new
        self.modified = False
        self.accessed = False
        self.previous_sid: Optional[str] = None

    def rotate(self) -> None:
        """Issue a fresh id for the same contents (call on privilege change)."""
        self.previous_sid = self.sid
        self.sid = new_session_id()
        self.modified = True


class ServerSideSessionInterface(SessionInterface):
    """Keeps only the session id in the cookie; everything else stays server side."""

    session_class = ServerSession

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def open_session(self, app, request) -> ServerSession:
        sid = request.cookies.get(self.get_cookie_name(app))
        if sid:
            data = self.store.get(sid)
            if data is not None:
                return self.session_class(data, sid=sid)
        return self.session_class(new=True)

    def save_session(self, app, session: ServerSession, response) -> None:
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)
        secure = self.get_cookie_secure(app)
        samesite = self.get_cookie_samesite(app)
        httponly = self.get_cookie_httponly(app)

        rotated = bool(session.previous_sid)
        if rotated:
            self.store.delete(session.previous_sid)
            session.previous_sid = None

        if not session:
            if not session.new:
                self.store.delete(session.sid)
            if session.modified:
                response.delete_cookie(
                    name, domain=domain, path=path, secure=secure, samesite=samesite, httponly=httponly
                )
            return

        if session.accessed:
            response.vary.add("Cookie")

        if session.new or rotated:
            self.store.set(session.sid, dict(session))
        elif session.modified:
            # A record deleted mid-request (logout elsewhere) stays deleted
            if not self.store.replace(session.sid, dict(session)):
                return
        elif not self.store.touch(session.sid):
            return

        if session.new or session.modified or self.should_set_cookie(app, session):
            response.set_cookie(
                name,
                session.sid,
                expires=self.get_expiration_time(app, session),
                httponly=httponly,
                domain=domain,
                path=path,
                secure=secure,
                samesite=samesite,
            )


__all__ = ["SessionStore", "ServerSession", "ServerSideSessionInterface", "new_session_id"]
