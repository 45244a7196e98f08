# In-memory kiosk login session management (creation, transition,
# expiry, and reclamation).

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from trash2cash.core.errors import NotFound
from trash2cash.services.clock import SystemClock, new_token

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    ACTIVE = "active"
    EXPIRED = "expired"


# Forward-only lifecycle; ACTIVE and EXPIRED are terminal.
_TRANSITIONS = {
    SessionStatus.PENDING: {SessionStatus.CONNECTED, SessionStatus.ACTIVE, SessionStatus.EXPIRED},
    SessionStatus.CONNECTED: {SessionStatus.ACTIVE, SessionStatus.EXPIRED},
}

# Statuses that still run against the TTL.
_EXPIRABLE = {SessionStatus.PENDING, SessionStatus.CONNECTED}


@dataclass(frozen=True)
class Session:
    token: str
    kiosk_id: str
    qr_payload: str
    status: SessionStatus
    created_at: float
    expires_at: float
    bound_user_id: str | None = None

    @property
    def is_bound(self) -> bool:
        return self.status in (SessionStatus.CONNECTED, SessionStatus.ACTIVE)


class SessionStore:
    def __init__(self, ttl_seconds: int, grace_seconds: int = 600, clock=None,
                 token_factory: Callable[[], str] = new_token):
        self.ttl_seconds = ttl_seconds
        self.grace_seconds = grace_seconds
        self._clock = clock or SystemClock()
        self._token_factory = token_factory
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def _now(self) -> float:
        return self._clock.now()

    def create(self, kiosk_id: str, payload_for: Callable[[str], str]) -> Session:
        """Create a pending session, expiring any pending one for the same kiosk."""
        now = self._now()
        with self._lock:
            for token, prior in list(self._sessions.items()):
                if prior.kiosk_id == kiosk_id and prior.status == SessionStatus.PENDING:
                    self._sessions[token] = replace(prior, status=SessionStatus.EXPIRED)
                    logger.info(f"Session superseded: kiosk={kiosk_id}")

            token = self._token_factory()
            while token in self._sessions:
                token = self._token_factory()

            session = Session(
                token=token,
                kiosk_id=kiosk_id,
                qr_payload=payload_for(token),
                status=SessionStatus.PENDING,
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )
            self._sessions[token] = session
        return session

    def get_by_token(self, token: str) -> Session | None:
        with self._lock:
            return self._sessions.get(token)

    def compare_and_transition(self, token: str, expected: SessionStatus, new: SessionStatus,
                               user_id: str | None = None, now: float | None = None) -> Session | None:
        """
        Move `token` from `expected` to `new` atomically.

        Returns the updated session, or None when the current status is not
        `expected` or (for any target other than EXPIRED) the TTL has passed
        at `now`. Raises NotFound for unknown tokens.
        """
        if new not in _TRANSITIONS.get(expected, set()):
            raise ValueError(f"Illegal session transition {expected.value} -> {new.value}")

        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                raise NotFound("Session not found")
            if session.status != expected:
                return None
            if new != SessionStatus.EXPIRED and now is not None and now > session.expires_at:
                return None

            bound = user_id if user_id is not None else session.bound_user_id
            updated = replace(session, status=new, bound_user_id=bound)
            self._sessions[token] = updated
            return updated

    def expire_if_due(self, token: str, now: float | None = None) -> Session:
        if now is None:
            now = self._now()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                raise NotFound("Session not found")
            if session.status in _EXPIRABLE and now > session.expires_at:
                session = replace(session, status=SessionStatus.EXPIRED)
                self._sessions[token] = session
                logger.info(f"Session expired: kiosk={session.kiosk_id}")
            return session

    def touch(self, token: str, now: float | None = None) -> Session:
        """Slide an active session's deadline so purge only reclaims idle ones."""
        if now is None:
            now = self._now()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                raise NotFound("Session not found")
            if session.status == SessionStatus.ACTIVE:
                session = replace(session, expires_at=max(session.expires_at, now + self.ttl_seconds))
                self._sessions[token] = session
            return session

    def discard(self, token: str) -> Session:
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is None:
            raise NotFound("Session not found")
        return session

    def purge(self, now: float | None = None) -> int:
        """
        Drop sessions whose TTL plus grace period has fully elapsed.
        Active sessions are touched on every use, so only idle ones go.
        """
        if now is None:
            now = self._now()
        with self._lock:
            stale = [t for t, s in self._sessions.items() if now > s.expires_at + self.grace_seconds]
            for token in stale:
                del self._sessions[token]
        if stale:
            logger.debug(f"Purged {len(stale)} stale sessions")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
