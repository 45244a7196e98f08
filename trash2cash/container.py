"""Dependency wiring for the station service."""

from dataclasses import dataclass

from trash2cash.core.config import Settings, settings as default_settings
from trash2cash.db import InMemoryDB
from trash2cash.services.auth_service import SessionAuthenticationEngine
from trash2cash.services.clock import SystemClock
from trash2cash.services.ledger import BalanceLedger
from trash2cash.services.limiter import RateLimiter
from trash2cash.services.logger import EventLog
from trash2cash.services.qr_service import QRService
from trash2cash.services.rewards import RewardCalculator
from trash2cash.services.sensor import SimulatedSensor
from trash2cash.services.sessions import SessionStore
from trash2cash.services.submissions import SubmissionRewardPipeline


@dataclass
class StationContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    db: InMemoryDB
    qr_service: QRService
    sessions: SessionAuthenticationEngine
    limiter: RateLimiter
    calculator: RewardCalculator
    ledger: BalanceLedger
    pipeline: SubmissionRewardPipeline
    sensor: SimulatedSensor


def build_container(settings: Settings | None = None, clock=None) -> StationContainer:
    """Create the default dependency container."""
    resolved = settings or default_settings
    clock = clock or SystemClock()
    event_log = EventLog(resolved.EVENT_LOG_FILE)

    db = InMemoryDB()
    qr_service = QRService(resolved.SECRET_KEY, signed=resolved.USE_SIGNED_QR)
    store = SessionStore(
        ttl_seconds=resolved.SESSION_TTL_SECONDS,
        grace_seconds=resolved.SESSION_GRACE_SECONDS,
        clock=clock,
    )
    limiter = RateLimiter(
        max_requests=resolved.SESSION_REQUEST_BURST,
        window_seconds=resolved.SESSION_REQUEST_WINDOW_SECONDS,
        enabled=resolved.RATE_LIMIT_ENABLED,
        clock=clock,
    )
    engine = SessionAuthenticationEngine(store, qr_service, limiter=limiter, event_log=event_log)
    calculator = RewardCalculator(resolved.REWARD_RATES)
    ledger = BalanceLedger(db)
    pipeline = SubmissionRewardPipeline(db, ledger, calculator, clock=clock, event_log=event_log)

    return StationContainer(
        settings=resolved,
        db=db,
        qr_service=qr_service,
        sessions=engine,
        limiter=limiter,
        calculator=calculator,
        ledger=ledger,
        pipeline=pipeline,
        sensor=SimulatedSensor(seed=resolved.SENSOR_SEED),
    )
