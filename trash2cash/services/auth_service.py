import logging
import time

from trash2cash.core.errors import AlreadyResolved, Expired, InvalidInput, RateLimited
from trash2cash.services.limiter import RateLimiter
from trash2cash.services.logger import EventLog
from trash2cash.services.qr_service import QRService
from trash2cash.services.sessions import Session, SessionStatus, SessionStore

"""SessionAuthenticationEngine: the kiosk QR session lifecycle and polling contract"""


logger = logging.getLogger(__name__)


def _short(token: str) -> str:
    # Tokens are credentials; only a prefix goes to the logs.
    return token[:8]


class SessionAuthenticationEngine:
    def __init__(self, store: SessionStore, qr_service: QRService,
                 limiter: RateLimiter | None = None, event_log: EventLog | None = None):
        self.store = store
        self.qr_service = qr_service
        self.limiter = limiter
        self.event_log = event_log or EventLog()

    def _now(self) -> float:
        return self.store._now()

    def request_session(self, kiosk_id: str = "default", client_key: str | None = None) -> Session:
        """
        Creates a new pending session for a kiosk.
        Any earlier pending session from the same kiosk is expired.

        :param client_key: rate-limit key for the caller (the client address
            over HTTP); falls back to the kiosk id
        """
        if not kiosk_id:
            raise InvalidInput("Kiosk id is required")

        if self.limiter is not None:
            key = client_key or kiosk_id
            try:
                self.limiter.check(key)
            except RateLimited:
                logger.warning(f"Session request rate limited: client={key}, kiosk={kiosk_id}")
                self.event_log.log_event("request_session", "-", "rate_limited")
                raise

        self.store.purge()
        session = self.store.create(kiosk_id, self.qr_service.payload_for)

        logger.info(f"Session requested: token={_short(session.token)}, kiosk={kiosk_id}")
        self.event_log.log_event("request_session", _short(session.token), "pending")
        return session

    def resolve_session(self, token: str, user_id: str, activate: bool = False) -> SessionStatus:
        """
        Mobile-side confirmation. Binds `user_id` and moves the session out of
        pending; exactly one concurrent caller wins.
        """
        if not user_id:
            raise InvalidInput("User id is required")

        started = time.perf_counter()
        now = self._now()
        current = self.store.expire_if_due(token, now)
        if current.status == SessionStatus.EXPIRED:
            logger.info(f"Resolve failed: token={_short(token)} expired")
            self.event_log.log_event("resolve_session", _short(token), "expired")
            raise Expired("Session expired")

        target = SessionStatus.ACTIVE if activate else SessionStatus.CONNECTED
        updated = self.store.compare_and_transition(
            token, SessionStatus.PENDING, target, user_id=user_id, now=now
        )
        if updated is None:
            latest = self.store.expire_if_due(token, now)
            if latest.status == SessionStatus.EXPIRED:
                self.event_log.log_event("resolve_session", _short(token), "expired")
                raise Expired("Session expired")
            logger.warning(f"Resolve failed: token={_short(token)} already {latest.status.value}")
            self.event_log.log_event("resolve_session", _short(token), "already_resolved")
            raise AlreadyResolved("Session already connected")

        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.info(f"Session resolved: token={_short(token)}, user={user_id}, status={updated.status.value}")
        self.event_log.log_event("resolve_session", _short(token), updated.status.value, latency_ms)
        return updated.status

    def check_status(self, token: str) -> tuple[SessionStatus, dict | None]:
        """
        Idempotent poll. Overdue sessions are expired here, on read.
        User data is only returned once the session is connected or active.
        """
        session = self.store.expire_if_due(token)
        if session.is_bound:
            return session.status, {"userId": session.bound_user_id}
        return session.status, None

    def get_session(self, token: str) -> Session:
        return self.store.expire_if_due(token)

    def activate_session(self, token: str) -> Session:
        """Moves a connected session to active; a no-op when already active."""
        now = self._now()
        session = self.store.expire_if_due(token, now)
        if session.status == SessionStatus.ACTIVE:
            return self.store.touch(token, now)
        if session.status == SessionStatus.EXPIRED:
            raise Expired("Session expired")
        if session.status == SessionStatus.PENDING:
            raise InvalidInput("No user connected. Please scan QR code first.")

        updated = self.store.compare_and_transition(
            token, SessionStatus.CONNECTED, SessionStatus.ACTIVE, now=now
        )
        if updated is None:
            # Lost a race with another activation or with expiry.
            latest = self.store.expire_if_due(token, now)
            if latest.status == SessionStatus.ACTIVE:
                return self.store.touch(token, now)
            raise Expired("Session expired")

        logger.info(f"Session active: token={_short(token)}, user={updated.bound_user_id}")
        self.event_log.log_event("activate_session", _short(token), "active")
        return self.store.touch(token, now)

    def require_bound_user(self, token: str) -> str:
        """Returns the user bound to a session, activating it on first use."""
        return self.activate_session(token).bound_user_id

    def end_session(self, token: str) -> Session:
        session = self.store.discard(token)
        logger.info(f"Session ended: token={_short(token)}, status={session.status.value}")
        self.event_log.log_event("end_session", _short(token), session.status.value)
        return session

    def reclaim(self) -> int:
        return self.store.purge()
