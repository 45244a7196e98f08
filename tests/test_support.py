"""Tests for configuration parsing, logging, the event log and QR payloads."""

import csv
import logging

import pytest

from trash2cash.core.config import parse_reward_rates
from trash2cash.core.errors import InvalidInput
from trash2cash.core.logging_config import configure_logging
from trash2cash.services.auth_service import SessionAuthenticationEngine
from trash2cash.services.logger import EventLog
from trash2cash.services.qr_service import QRService
from trash2cash.services.sensor import SimulatedSensor
from trash2cash.services.sessions import SessionStore
from tests.conftest import FakeClock


def test_parse_reward_rates() -> None:
    assert parse_reward_rates(None) == {}
    assert parse_reward_rates("") == {}
    assert parse_reward_rates(" Plastic=2500, metal = 3100 ,") == {"plastic": 2500.0, "metal": 3100.0}
    with pytest.raises(ValueError):
        parse_reward_rates("plastic")


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("trash2cash")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging("debug")
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert logger.level == logging.DEBUG


def test_event_log_writes_csv_rows(tmp_path) -> None:
    path = tmp_path / "events.csv"
    clock = FakeClock()
    engine = SessionAuthenticationEngine(
        SessionStore(ttl_seconds=300, clock=clock), QRService("secret"), event_log=EventLog(str(path))
    )

    session = engine.request_session("kiosk-1")
    engine.resolve_session(session.token, "alice")

    with open(path, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["timestamp", "event_type", "session_id", "outcome", "latency_ms"]
    assert [(r[1], r[3]) for r in rows[1:]] == [
        ("request_session", "pending"),
        ("resolve_session", "connected"),
    ]
    # Only a token prefix is written.
    assert all(session.token not in r for r in rows)


def test_event_log_without_path_is_noop(tmp_path) -> None:
    EventLog(None).log_event("request_session", "abc", "pending")

    assert list(tmp_path.iterdir()) == []


def test_unsigned_qr_payload_round_trip() -> None:
    qr = QRService("secret", signed=False)

    payload = qr.payload_for("tok-1")

    assert qr.verify_qr_payload(payload) == {"v": 1, "sessionToken": "tok-1"}
    assert qr.token_from_payload(payload) == "tok-1"


@pytest.mark.parametrize("payload", ["", "not json", "[]", '{"data_str": "{}"}', '{"data_str": 1, "sig": 2}'])
def test_malformed_qr_payload_is_invalid(payload: str) -> None:
    qr = QRService("secret")

    assert qr.verify_qr_payload(payload) is None
    with pytest.raises(InvalidInput):
        qr.token_from_payload(payload)


def test_payload_signed_with_other_key_is_rejected() -> None:
    payload = QRService("other-secret").payload_for("tok-1")

    with pytest.raises(InvalidInput):
        QRService("secret").token_from_payload(payload)


def test_simulated_sensor_readings_are_in_range() -> None:
    sensor = SimulatedSensor(seed=3)

    readings = [sensor.read() for _ in range(200)]

    detected = [r for r in readings if r.detected]
    assert detected
    assert any(not r.detected for r in readings)
    assert all(0.1 <= r.weight <= 5.0 for r in detected)
    assert {r.material for r in detected} <= {"plastic", "glass", "metal", "paper"}
    assert all(r.material is None and r.weight == 0.0 for r in readings if not r.detected)
