"""Tests for the session store and the session authentication engine."""

import threading

import pytest

from trash2cash.core.errors import AlreadyResolved, Expired, InvalidInput, NotFound, RateLimited
from trash2cash.services.auth_service import SessionAuthenticationEngine
from trash2cash.services.limiter import RateLimiter
from trash2cash.services.qr_service import QRService
from trash2cash.services.sessions import SessionStatus, SessionStore
from tests.conftest import FakeClock


def _engine(clock: FakeClock, burst: int = 100, token_factory=None) -> SessionAuthenticationEngine:
    kwargs = {"token_factory": token_factory} if token_factory else {}
    store = SessionStore(ttl_seconds=300, grace_seconds=600, clock=clock, **kwargs)
    limiter = RateLimiter(max_requests=burst, window_seconds=60, clock=clock)
    return SessionAuthenticationEngine(store, QRService("test-secret"), limiter=limiter)


def test_request_session_returns_pending_token_with_ttl(clock: FakeClock) -> None:
    engine = _engine(clock)

    session = engine.request_session("kiosk-1")

    assert session.status == SessionStatus.PENDING
    assert session.expires_at == clock.now() + 300
    assert session.bound_user_id is None
    assert session.qr_payload != session.token
    assert engine.qr_service.token_from_payload(session.qr_payload) == session.token


def test_tokens_are_unique(clock: FakeClock) -> None:
    engine = _engine(clock)

    tokens = {engine.request_session(f"kiosk-{i}").token for i in range(50)}

    assert len(tokens) == 50


def test_concrete_connect_scenario(clock: FakeClock) -> None:
    engine = _engine(clock, token_factory=lambda: "abc123")

    session = engine.request_session("kiosk-1")
    assert session.token == "abc123"
    assert session.expires_at == clock.now() + 300

    assert engine.resolve_session("abc123", "user42") == SessionStatus.CONNECTED
    status, user = engine.check_status("abc123")

    assert status == SessionStatus.CONNECTED
    assert user == {"userId": "user42"}


def test_check_status_hides_user_until_connected(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    status, user = engine.check_status(session.token)

    assert status == SessionStatus.PENDING
    assert user is None


def test_resolve_can_activate_directly(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    status = engine.resolve_session(session.token, "alice", activate=True)

    assert status == SessionStatus.ACTIVE
    assert engine.check_status(session.token) == (SessionStatus.ACTIVE, {"userId": "alice"})


def test_pending_session_expires_on_read(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    clock.advance(301)
    status, user = engine.check_status(session.token)

    assert status == SessionStatus.EXPIRED
    assert user is None
    with pytest.raises(Expired):
        engine.resolve_session(session.token, "alice")
    # Still expired; never resurrected.
    assert engine.check_status(session.token)[0] == SessionStatus.EXPIRED


def test_resolve_after_ttl_without_prior_read_fails(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    clock.advance(300.5)

    with pytest.raises(Expired):
        engine.resolve_session(session.token, "alice")
    assert engine.check_status(session.token)[0] == SessionStatus.EXPIRED


def test_session_is_valid_right_at_expiry(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    clock.advance(300)

    assert engine.resolve_session(session.token, "alice") == SessionStatus.CONNECTED


def test_resolve_unknown_token() -> None:
    engine = _engine(FakeClock())

    with pytest.raises(NotFound):
        engine.resolve_session("missing", "alice")
    with pytest.raises(NotFound):
        engine.check_status("missing")


def test_resolve_requires_user_id(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    with pytest.raises(InvalidInput):
        engine.resolve_session(session.token, "")
    assert engine.check_status(session.token)[0] == SessionStatus.PENDING


def test_second_resolve_is_rejected(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")
    engine.resolve_session(session.token, "alice")

    with pytest.raises(AlreadyResolved):
        engine.resolve_session(session.token, "mallory")

    assert engine.check_status(session.token) == (SessionStatus.CONNECTED, {"userId": "alice"})


def test_concurrent_resolution_has_exactly_one_winner(clock: FakeClock) -> None:
    engine = _engine(clock)

    for _ in range(50):
        session = engine.request_session("kiosk-1")
        barrier = threading.Barrier(2)
        outcomes: list[str] = []
        lock = threading.Lock()

        def resolve(user_id: str) -> None:
            barrier.wait()
            try:
                engine.resolve_session(session.token, user_id)
                result = f"won:{user_id}"
            except AlreadyResolved:
                result = "lost"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=resolve, args=(u,)) for u in ("alice", "bob")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        winners = [o for o in outcomes if o.startswith("won:")]
        assert len(winners) == 1
        assert outcomes.count("lost") == 1
        status, user = engine.check_status(session.token)
        assert status == SessionStatus.CONNECTED
        assert user == {"userId": winners[0].split(":", 1)[1]}


def test_new_request_supersedes_pending_session_for_same_kiosk(clock: FakeClock) -> None:
    engine = _engine(clock)
    first = engine.request_session("kiosk-1")
    other_kiosk = engine.request_session("kiosk-2")

    second = engine.request_session("kiosk-1")

    assert first.token != second.token
    assert engine.check_status(first.token)[0] == SessionStatus.EXPIRED
    assert engine.check_status(second.token)[0] == SessionStatus.PENDING
    assert engine.check_status(other_kiosk.token)[0] == SessionStatus.PENDING
    with pytest.raises(Expired):
        engine.resolve_session(first.token, "alice")


def test_new_request_keeps_connected_session(clock: FakeClock) -> None:
    engine = _engine(clock)
    first = engine.request_session("kiosk-1")
    engine.resolve_session(first.token, "alice")

    engine.request_session("kiosk-1")

    assert engine.check_status(first.token)[0] == SessionStatus.CONNECTED


def test_request_session_is_rate_limited_per_kiosk(clock: FakeClock) -> None:
    engine = _engine(clock, burst=3)

    for _ in range(3):
        engine.request_session("kiosk-1")
    with pytest.raises(RateLimited):
        engine.request_session("kiosk-1")

    engine.request_session("kiosk-2")

    clock.advance(61)
    engine.request_session("kiosk-1")


def test_activate_moves_connected_to_active(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")
    engine.resolve_session(session.token, "alice")

    assert engine.require_bound_user(session.token) == "alice"
    assert engine.check_status(session.token)[0] == SessionStatus.ACTIVE
    # Idempotent once active.
    assert engine.activate_session(session.token).status == SessionStatus.ACTIVE


def test_require_bound_user_rejects_pending_session(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    with pytest.raises(InvalidInput):
        engine.require_bound_user(session.token)


def test_connected_session_expires_after_ttl(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")
    engine.resolve_session(session.token, "alice")

    clock.advance(301)

    with pytest.raises(Expired):
        engine.require_bound_user(session.token)
    assert engine.check_status(session.token) == (SessionStatus.EXPIRED, None)


def test_active_session_outlives_ttl(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")
    engine.resolve_session(session.token, "alice", activate=True)

    clock.advance(301)

    assert engine.require_bound_user(session.token) == "alice"


def test_end_session_discards_token(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")

    engine.end_session(session.token)

    with pytest.raises(NotFound):
        engine.check_status(session.token)
    with pytest.raises(NotFound):
        engine.end_session(session.token)


def test_reclaim_drops_sessions_after_grace_period(clock: FakeClock) -> None:
    engine = _engine(clock)
    old = engine.request_session("kiosk-1")
    clock.advance(300 + 601)
    fresh = engine.request_session("kiosk-2")

    with pytest.raises(NotFound):
        engine.check_status(old.token)
    assert engine.check_status(fresh.token)[0] == SessionStatus.PENDING
    assert engine.reclaim() == 0


def test_status_never_moves_backward(clock: FakeClock) -> None:
    store = SessionStore(ttl_seconds=300, clock=clock)
    session = store.create("kiosk-1", lambda token: f"qr:{token}")
    store.compare_and_transition(session.token, SessionStatus.PENDING, SessionStatus.CONNECTED, user_id="alice")

    assert store.compare_and_transition(session.token, SessionStatus.PENDING, SessionStatus.EXPIRED) is None
    with pytest.raises(ValueError):
        store.compare_and_transition(session.token, SessionStatus.ACTIVE, SessionStatus.PENDING)
    with pytest.raises(ValueError):
        store.compare_and_transition(session.token, SessionStatus.EXPIRED, SessionStatus.CONNECTED)
    assert store.get_by_token(session.token).status == SessionStatus.CONNECTED


def test_compare_and_transition_refuses_overdue_session(clock: FakeClock) -> None:
    store = SessionStore(ttl_seconds=300, clock=clock)
    session = store.create("kiosk-1", lambda token: token)

    result = store.compare_and_transition(
        session.token, SessionStatus.PENDING, SessionStatus.CONNECTED,
        user_id="alice", now=session.expires_at + 1,
    )

    assert result is None
    assert store.get_by_token(session.token).status == SessionStatus.PENDING


def test_active_session_in_use_is_not_reclaimed(clock: FakeClock) -> None:
    engine = _engine(clock)
    session = engine.request_session("kiosk-1")
    engine.resolve_session(session.token, "alice", activate=True)

    for _ in range(4):
        clock.advance(400)
        assert engine.reclaim() == 0
        assert engine.require_bound_user(session.token) == "alice"

    clock.advance(300 + 601)

    assert engine.reclaim() == 1
    with pytest.raises(NotFound):
        engine.require_bound_user(session.token)


def test_rate_limit_uses_client_key_over_kiosk_id(clock: FakeClock) -> None:
    engine = _engine(clock, burst=2)

    engine.request_session("kiosk-1", client_key="10.0.0.5")
    engine.request_session("kiosk-2", client_key="10.0.0.5")
    with pytest.raises(RateLimited):
        engine.request_session("kiosk-3", client_key="10.0.0.5")

    engine.request_session("kiosk-3", client_key="10.0.0.6")


def test_limiter_forgets_idle_keys(clock: FakeClock) -> None:
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
    for i in range(10):
        limiter.check(f"k{i}")
    assert len(limiter) == 10

    clock.advance(61)
    limiter.check("k-new")

    assert len(limiter) == 1
