"""In-memory login sessions."""

from __future__ import annotations

import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from .config import DEFAULT_SESSION_TTL
from .models import Identity, Session


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Issue, resolve, and revoke sessions with a fixed lifetime."""

    def __init__(
        self,
        *,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def cookie_max_age(self) -> int:
        return int(self._ttl.total_seconds())

    def create(self, identity: Identity) -> Session:
        """Issue a new session, sweeping expired ones first."""
        self.prune()
        session = Session(
            token=secrets.token_urlsafe(32),
            identity=identity,
            expires_at=self._clock() + self._ttl,
        )
        with self._lock:
            self._sessions[session.token] = session
        return session

    def resolve(self, token: Optional[str]) -> Optional[Identity]:
        """Return the identity bound to a live session, expiring it lazily."""
        if not token:
            return None
        now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.expires_at <= now:
                self._sessions.pop(token, None)
                return None
            return session.identity

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def prune(self) -> int:
        """Drop every expired session and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [token for token, session in self._sessions.items() if session.expires_at <= now]
            for token in expired:
                self._sessions.pop(token, None)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["SessionManager"]
