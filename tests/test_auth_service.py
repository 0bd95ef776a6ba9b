"""Session caching and expiry for admin bearer tokens."""

from __future__ import annotations

from dataclasses import replace

import pytest

from backend.repository.booking_api_repository import ApiSession, BookingApiAuthError
from backend.services.auth_service import (
    AuthService,
    InvalidCredentialsError,
    InvalidSessionError,
)
from conftest import ADMIN, ADMIN_PASSWORD


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def verify_calls(fake_repository, monkeypatch) -> list[str]:
    calls: list[str] = []
    original = fake_repository.get_current_admin

    def counting_get_current_admin(*, session):
        calls.append(session.token)
        return original(session=session)

    monkeypatch.setattr(fake_repository, "get_current_admin", counting_get_current_admin)
    return calls


@pytest.fixture
def service(fake_repository, settings, clock) -> AuthService:
    return AuthService(
        repository=fake_repository,
        settings=replace(settings, auth_session_ttl_seconds=60.0),
        clock=clock,
    )


def _revoke_upstream(fake_repository, monkeypatch) -> None:
    def revoked(*, session):
        raise BookingApiAuthError("Token revoked", status_code=401)

    monkeypatch.setattr(fake_repository, "get_current_admin", revoked)


def test_login_rejects_bad_password(service) -> None:
    with pytest.raises(InvalidCredentialsError):
        service.login("admin", "wrong")


def test_logged_in_token_is_served_from_cache_within_ttl(service, clock, verify_calls) -> None:
    session = service.login("admin", ADMIN_PASSWORD)
    clock.advance(59)
    assert service.resolve(session.token).admin == ADMIN
    assert verify_calls == []


def test_unknown_token_is_verified_once_then_cached(service, clock, verify_calls) -> None:
    assert service.resolve("token-123").admin == ADMIN
    clock.advance(30)
    assert service.resolve("token-123").admin == ADMIN
    assert verify_calls == ["token-123"]


def test_token_is_reverified_after_ttl(service, clock, verify_calls) -> None:
    service.login("admin", ADMIN_PASSWORD)
    clock.advance(60)
    assert service.resolve("token-123").admin == ADMIN
    assert verify_calls == ["token-123"]

    clock.advance(10)
    service.resolve("token-123")
    assert verify_calls == ["token-123"]


def test_revoked_token_is_rejected_after_ttl(service, clock, fake_repository, monkeypatch) -> None:
    service.login("admin", ADMIN_PASSWORD)
    _revoke_upstream(fake_repository, monkeypatch)

    # Still inside the TTL window: the cached session answers.
    assert service.resolve("token-123").admin == ADMIN

    clock.advance(61)
    with pytest.raises(InvalidSessionError):
        service.resolve("token-123")
    assert "token-123" not in service._sessions


def test_expired_sessions_are_pruned_on_insert(service, clock, fake_repository) -> None:
    service.login("admin", ADMIN_PASSWORD)
    clock.advance(120)
    fake_repository.login = lambda username, password: ApiSession(token="token-456", admin=ADMIN)
    service.login("admin", ADMIN_PASSWORD)
    assert list(service._sessions) == ["token-456"]


def test_empty_and_logged_out_tokens(service, verify_calls) -> None:
    with pytest.raises(InvalidSessionError):
        service.resolve("")

    service.login("admin", ADMIN_PASSWORD)
    service.logout("token-123")
    service.resolve("token-123")
    assert verify_calls == ["token-123"]
