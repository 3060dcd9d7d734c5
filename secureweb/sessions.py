# secureweb/sessions.py

"""
In-memory session store with lazy expiry.

Each token maps to a `Session(user_id, expires_at)`. An entry moves through
Active -> Expired -> Removed: expiry is only noticed when the token is read,
at which point the entry is deleted. `evict_expired` is an optional sweep for
callers that want to bound memory without waiting for reads.
"""

import secrets
import time
from typing import Callable, Dict, NamedTuple


class Session(NamedTuple):
    user_id: int
    expires_at: float


class SessionStore:
    def __init__(self, ttl_seconds: int = 1800, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, user_id: int, ttl_seconds: int | None = None) -> str:
        """Issue a fresh 256-bit random token for `user_id`."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        token = secrets.token_hex(32)
        self._sessions[token] = Session(user_id, self._clock() + ttl)
        return token

    def get(self, token: str | None) -> Session | None:
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.expires_at <= self._clock():
            del self._sessions[token]
            return None
        return session

    def revoke(self, token: str | None) -> None:
        if token:
            self._sessions.pop(token, None)

    def evict_expired(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [t for t, s in self._sessions.items() if s.expires_at <= now]
        for token in expired:
            del self._sessions[token]
        return len(expired)
