"""Admin authentication against the booking API's auth endpoints."""

from __future__ import annotations

import time
from threading import RLock
from typing import Callable, Optional

from backend.repository.booking_api_repository import (
    ApiSession,
    BookingApiAuthError,
    BookingApiRepository,
)
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Base authentication failure."""


class InvalidCredentialsError(AuthenticationError):
    """Raised when the booking API rejects a username/password pair."""


class InvalidSessionError(AuthenticationError):
    """Raised when a bearer token is unknown or expired upstream."""


class AuthService:
    """Turns credentials into explicit ``ApiSession`` objects.

    Tokens are issued by the booking API. Sessions created through
    :meth:`login`, and tokens verified through ``/auth/me``, are remembered
    for ``AUTH_SESSION_TTL_SECONDS``; after that the token is verified
    upstream again and dropped if the API no longer accepts it.
    """

    def __init__(
        self,
        repository: Optional[BookingApiRepository] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or BookingApiRepository(self._settings)
        self._ttl_seconds = self._settings.auth_session_ttl_seconds
        self._clock = clock
        self._lock = RLock()
        # token -> (session, monotonic time it was last verified)
        self._sessions: dict[str, tuple[ApiSession, float]] = {}

    def _remember(self, session: ApiSession) -> None:
        now = self._clock()
        with self._lock:
            expired = [
                token
                for token, (_, verified_at) in self._sessions.items()
                if now - verified_at >= self._ttl_seconds
            ]
            for token in expired:
                del self._sessions[token]
            self._sessions[session.token] = (session, now)

    def login(self, username: str, password: str) -> ApiSession:
        try:
            session = self._repository.login(username, password)
        except BookingApiAuthError as exc:
            logger.info("Admin login rejected for %s", username)
            raise InvalidCredentialsError("Invalid username or password") from exc
        self._remember(session)
        logger.info("Admin %s logged in", username)
        return session

    def resolve(self, bearer_token: str) -> ApiSession:
        if not bearer_token:
            raise InvalidSessionError("Bearer token is empty")
        with self._lock:
            cached = self._sessions.get(bearer_token)
        if cached is not None:
            session, verified_at = cached
            if self._clock() - verified_at < self._ttl_seconds:
                return session

        try:
            admin = self._repository.get_current_admin(session=ApiSession(token=bearer_token))
        except BookingApiAuthError as exc:
            with self._lock:
                self._sessions.pop(bearer_token, None)
            logger.info("Bearer token no longer accepted upstream")
            raise InvalidSessionError("Session expired or invalid. Login again.") from exc
        session = ApiSession(token=bearer_token, admin=admin)
        self._remember(session)
        return session

    def logout(self, bearer_token: str) -> None:
        with self._lock:
            self._sessions.pop(bearer_token, None)
