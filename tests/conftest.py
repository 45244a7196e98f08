"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient

from trash2cash.container import StationContainer, build_container
from trash2cash.core.config import Settings
from trash2cash.main import create_app
from trash2cash.services.sensor import SensorReading

START = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = START):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FixedSensor:
    """Sensor that always returns the same reading."""

    def __init__(self, reading: SensorReading):
        self.reading = reading

    def read(self) -> SensorReading:
        return self.reading


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    s = Settings()
    s.SESSION_TTL_SECONDS = 300
    s.POLL_INTERVAL_MS = 2000
    s.SESSION_GRACE_SECONDS = 600
    s.RATE_LIMIT_ENABLED = True
    s.SESSION_REQUEST_BURST = 5
    s.SESSION_REQUEST_WINDOW_SECONDS = 60
    s.USE_SIGNED_QR = True
    s.REWARD_RATES = {}
    s.EVENT_LOG_FILE = None
    s.SENSOR_SEED = 7
    return s


@pytest.fixture
def container(settings: Settings, clock: FakeClock) -> StationContainer:
    return build_container(settings, clock=clock)


@pytest.fixture
def client(container: StationContainer) -> TestClient:
    return TestClient(create_app(container))
