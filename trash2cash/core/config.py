# Centralised application configuration
# (environment variables, constants, timeouts, reward rates).

import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def parse_reward_rates(raw: str | None) -> dict[str, float]:
    """Parse `material=rate` pairs, e.g. "plastic=2000,metal=3000"."""
    rates: dict[str, float] = {}
    if raw is None:
        return rates
    for chunk in raw.split(","):
        value = chunk.strip()
        if not value:
            continue
        material, sep, rate = value.partition("=")
        if not sep:
            raise ValueError(f"Invalid reward rate entry: {value!r}")
        rates[material.strip().lower()] = float(rate)
    return rates


class Settings:
    APP_NAME = os.getenv("APP_NAME", "Trash2Cash Station")
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-change-me")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "trash2cash-local")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "trash2cash-station")
    ACCESS_TOKEN_TTL_SECONDS = int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "900"))
    SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "300")) # 5 Minutes
    SESSION_GRACE_SECONDS = int(os.getenv("SESSION_GRACE_SECONDS", "600"))
    POLL_INTERVAL_MS = int(os.getenv("POLL_INTERVAL_MS", "2000"))

    # QR payload signing
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-qr-secret")
    USE_SIGNED_QR = _env_flag("USE_SIGNED_QR", "true")

    # Session request burst per kiosk
    RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
    SESSION_REQUEST_BURST = int(os.getenv("SESSION_REQUEST_BURST", "5"))
    SESSION_REQUEST_WINDOW_SECONDS = int(os.getenv("SESSION_REQUEST_WINDOW_SECONDS", "60"))

    REWARD_RATES = parse_reward_rates(os.getenv("REWARD_RATES"))

    EVENT_LOG_FILE = os.getenv("EVENT_LOG_FILE") or None
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SENSOR_SEED = int(os.environ["SENSOR_SEED"]) if os.getenv("SENSOR_SEED") else None

settings = Settings()
