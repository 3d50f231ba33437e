"""Server-side login sessions.

The browser only holds an opaque random session id in a cookie; the id maps
to a user id here. Entries expire ``ttl_seconds`` after creation and are
dropped lazily on lookup or in bulk by ``prune()``.
"""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .config import settings


@dataclass
class Session:
    user_id: int
    expires_at: float


class SessionStore:
    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, user_id: int) -> str:
        sid = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[sid] = Session(user_id=user_id, expires_at=self._clock() + self.ttl_seconds)
        return sid

    def get(self, sid: Optional[str]) -> Optional[int]:
        if not sid:
            return None
        with self._lock:
            session = self._sessions.get(sid)
            if session is None:
                return None
            if session.expires_at <= self._clock():
                del self._sessions[sid]
                return None
            return session.user_id

    def destroy(self, sid: Optional[str]) -> None:
        if not sid:
            return
        with self._lock:
            self._sessions.pop(sid, None)

    def prune(self) -> int:
        """Drop expired sessions, returning how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expires_at <= now]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


session_store = SessionStore()
