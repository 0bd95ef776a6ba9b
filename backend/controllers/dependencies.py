"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.repository.booking_api_repository import (
    ApiSession,
    BookingApiAuthError,
    BookingApiError,
    BookingApiNotFoundError,
    BookingApiUnavailableError,
)
from backend.services.auth_service import AuthService, InvalidSessionError
from backend.services.availability_service import AvailabilityService
from backend.services.booking_service import BookingWorkflowService
from backend.services.daily_overview_service import DailyOverviewService
from backend.services.history_service import HistoryService


bearer_scheme = HTTPBearer(auto_error=False)


def _state_service(request: Request, attribute: str, label: str):
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_auth_service(request: Request) -> AuthService:
    return _state_service(request, "auth_service", "Auth")


def get_availability_service(request: Request) -> AvailabilityService:
    return _state_service(request, "availability_service", "Availability")


def get_booking_service(request: Request) -> BookingWorkflowService:
    return _state_service(request, "booking_service", "Booking")


def get_daily_overview_service(request: Request) -> DailyOverviewService:
    return _state_service(request, "daily_overview_service", "Daily overview")


def get_history_service(request: Request) -> HistoryService:
    return _state_service(request, "history_service", "History")


def public_session() -> ApiSession:
    return ApiSession.anonymous()


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiSession:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    try:
        return auth_service.resolve(credentials.credentials)
    except InvalidSessionError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc


def upstream_http_exception(exc: Exception) -> HTTPException:
    """Map booking API failures onto the status codes this service returns."""
    if isinstance(exc, BookingApiUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        )
    if isinstance(exc, BookingApiAuthError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )
    if isinstance(exc, BookingApiNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        )
    if isinstance(exc, BookingApiError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unexpected upstream failure",
    )
