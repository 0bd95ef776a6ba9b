"""Domain-level validation rules for the booking workflow."""

from __future__ import annotations

from dataclasses import dataclass

from backend.utils.config import Settings


@dataclass(frozen=True)
class BookingPolicy:
    max_dates_per_booking: int
    unknown_room_label: str
    api_timeout_seconds: float
    session_ttl_seconds: float = 300.0


def validate_booking_policy(policy: BookingPolicy) -> None:
    if policy.max_dates_per_booking <= 0:
        raise ValueError("max_dates_per_booking must be > 0")
    if policy.max_dates_per_booking > 366:
        raise ValueError("max_dates_per_booking must be <= 366")
    if "{room_id}" not in policy.unknown_room_label:
        raise ValueError("unknown_room_label must contain a {room_id} placeholder")
    if policy.api_timeout_seconds <= 0:
        raise ValueError("api_timeout_seconds must be > 0")
    if policy.session_ttl_seconds <= 0:
        raise ValueError("session_ttl_seconds must be > 0")


def policy_from_settings(settings: Settings) -> BookingPolicy:
    policy = BookingPolicy(
        max_dates_per_booking=settings.booking_max_dates,
        unknown_room_label=settings.booking_unknown_room_label,
        api_timeout_seconds=settings.booking_api_timeout_seconds,
        session_ttl_seconds=settings.auth_session_ttl_seconds,
    )
    validate_booking_policy(policy)
    return policy
