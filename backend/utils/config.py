"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str

    booking_api_base_url: str
    booking_api_timeout_seconds: float
    auth_session_ttl_seconds: float
    booking_timezone: str

    booking_max_dates: int
    booking_unknown_room_label: str

    portal_host: str
    portal_port: int
    dashboard_api_base_url: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests reset with ``cache_clear()``."""
    host = _env_str("PORTAL_HOST", "127.0.0.1")
    port = _env_int("PORTAL_PORT", 8000)
    return Settings(
        app_name=_env_str("APP_NAME", "Meeting Room Booking Portal"),
        app_version=_env_str("APP_VERSION", "1.0.0"),
        log_level=_env_str("LOG_LEVEL", "INFO"),
        booking_api_base_url=_env_str(
            "BOOKING_API_BASE_URL", "http://127.0.0.1:8787/api"
        ).rstrip("/"),
        booking_api_timeout_seconds=_env_float("BOOKING_API_TIMEOUT_SECONDS", 10.0),
        auth_session_ttl_seconds=_env_float("AUTH_SESSION_TTL_SECONDS", 300.0),
        booking_timezone=_env_str("BOOKING_TIMEZONE", "Asia/Bangkok"),
        booking_max_dates=_env_int("BOOKING_MAX_DATES", 30),
        booking_unknown_room_label=_env_str("BOOKING_UNKNOWN_ROOM_LABEL", "Room {room_id}"),
        portal_host=host,
        portal_port=port,
        dashboard_api_base_url=_env_str(
            "DASHBOARD_API_BASE_URL", f"http://{host}:{port}"
        ).rstrip("/"),
    )
