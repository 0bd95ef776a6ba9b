"""Controller layer for the admin dashboard: approvals, daily overview, history."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from backend.controllers.booking_controller import (
    BookingFormRequest,
    BookingResponse,
    booking_to_response,
    conflict_http_exception,
)
from backend.controllers.dependencies import (
    get_auth_service,
    get_booking_service,
    get_daily_overview_service,
    get_history_service,
    require_admin,
    upstream_http_exception,
)
from backend.domain.models import (
    BookingStatus,
    DailyMeeting,
    HistoryAction,
    HistoryEntry,
    TimeSlot,
)
from backend.repository.booking_api_repository import (
    ApiSession,
    BookingApiError,
    BookingApiUnavailableError,
)
from backend.services.auth_service import AuthService, InvalidCredentialsError
from backend.services.availability_service import RoomNotFoundError
from backend.services.booking_service import (
    BookingNotFoundError,
    BookingValidationError,
    BookingWorkflowService,
    DraftConflictError,
)
from backend.services.daily_overview_service import DailyOverviewService
from backend.services.history_service import HistoryService, HistoryValidationError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["admin"])


class LoginRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(min_length=6, max_length=100)


class AdminResponse(BaseModel):
    admin_id: int
    username: str
    full_name: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: Optional[AdminResponse] = None


class DecisionRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: Optional[str] = Field(default=None, max_length=500)


class RejectRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(min_length=1, max_length=500)


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    counts: dict[str, int]


class DailyMeetingResponse(BaseModel):
    booking_id: int
    booking_code: str
    time_slot: TimeSlot
    room_id: int
    room_name: str
    capacity: Optional[int] = None
    meeting_title: str
    booker_name: str
    phone_number: str
    department: str
    status: BookingStatus
    need_break: bool
    break_organizer: Optional[str] = None
    break_details: Optional[str] = None
    dates: list[date]


class DailyStatsResponse(BaseModel):
    total_meetings: int = Field(ge=0)
    rooms_in_use: int = Field(ge=0)
    total_rooms: int = Field(ge=0)
    total_attendees: int = Field(ge=0)
    pending_approvals: int = Field(ge=0)
    break_requests: int = Field(ge=0)


class DailyOverviewResponse(BaseModel):
    date: date
    meetings: list[DailyMeetingResponse]
    stats: DailyStatsResponse
    total_meetings_before_filter: int = Field(ge=0)


class HistoryEntryResponse(BaseModel):
    id: int
    booking_id: int
    admin_id: int
    action: HistoryAction
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
    booking_code: Optional[str] = None
    booker_name: Optional[str] = None
    room_name: Optional[str] = None
    admin_name: Optional[str] = None


class HistoryPageResponse(BaseModel):
    entries: list[HistoryEntryResponse]
    total: int = Field(ge=0)
    limit: int = Field(ge=0)
    offset: int = Field(ge=0)


class HistorySummaryResponse(BaseModel):
    action_counts: dict[str, int]
    top_admins: list[dict[str, int | str]]
    recent_activity: list[dict[str, int | str]]


def _meeting_row(meeting: DailyMeeting) -> DailyMeetingResponse:
    return DailyMeetingResponse(
        booking_id=meeting.booking_id,
        booking_code=meeting.booking_code,
        time_slot=meeting.time_slot,
        room_id=meeting.room_id,
        room_name=meeting.room_name,
        capacity=meeting.capacity,
        meeting_title=meeting.meeting_title,
        booker_name=meeting.booker_name,
        phone_number=meeting.phone_number,
        department=meeting.department,
        status=meeting.status,
        need_break=meeting.need_break,
        break_organizer=meeting.break_organizer,
        break_details=meeting.break_details,
        dates=list(meeting.dates),
    )


def _history_row(entry: HistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(
        id=entry.entry_id,
        booking_id=entry.booking_id,
        admin_id=entry.admin_id,
        action=entry.action,
        reason=entry.reason,
        created_at=entry.created_at,
        booking_code=entry.booking_code,
        booker_name=entry.booker_name,
        room_name=entry.room_name,
        admin_name=entry.admin_name,
    )


def _acting_admin_id(session: ApiSession) -> int:
    if session.admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has no admin identity. Login again.",
        )
    return session.admin.admin_id


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        session = auth_service.login(payload.username, payload.password)
        admin = session.admin
        return LoginResponse(
            access_token=session.token or "",
            admin=(
                AdminResponse(
                    admin_id=admin.admin_id,
                    username=admin.username,
                    full_name=admin.full_name,
                )
                if admin is not None
                else None
            ),
        )
    except InvalidCredentialsError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected login failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to login",
        ) from exc


@router.get("/me", response_model=AdminResponse, status_code=status.HTTP_200_OK)
def me(session: ApiSession = Depends(require_admin)) -> AdminResponse:
    admin_id = _acting_admin_id(session)
    return AdminResponse(
        admin_id=admin_id,
        username=session.admin.username,
        full_name=session.admin.full_name,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    session: ApiSession = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
) -> Response:
    auth_service.logout(session.token or "")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/admin/bookings",
    response_model=BookingListResponse,
    status_code=status.HTTP_200_OK,
)
def list_bookings(
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    room_id: Optional[int] = Query(default=None, gt=0),
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(require_admin),
) -> BookingListResponse:
    try:
        result = service.list_bookings(session=session, status=booking_status, room_id=room_id)
        return BookingListResponse(
            bookings=[booking_to_response(booking) for booking in result["bookings"]],
            counts=result["counts"],
        )
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list bookings",
        ) from exc


@router.get(
    "/admin/daily_overview",
    response_model=DailyOverviewResponse,
    status_code=status.HTTP_200_OK,
)
def daily_overview(
    day: date = Query(alias="date"),
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    room_id: Optional[int] = Query(default=None, gt=0),
    search: Optional[str] = Query(default=None, max_length=200),
    service: DailyOverviewService = Depends(get_daily_overview_service),
    session: ApiSession = Depends(require_admin),
) -> DailyOverviewResponse:
    try:
        overview = service.get_overview(
            day=day,
            session=session,
            status=booking_status,
            room_id=room_id,
            search=search,
        )
        stats = overview.stats
        return DailyOverviewResponse(
            date=overview.date,
            meetings=[_meeting_row(meeting) for meeting in overview.meetings],
            stats=DailyStatsResponse(
                total_meetings=stats.total_meetings,
                rooms_in_use=stats.rooms_in_use,
                total_rooms=stats.total_rooms,
                total_attendees=stats.total_attendees,
                pending_approvals=stats.pending_approvals,
                break_requests=stats.break_requests,
            ),
            total_meetings_before_filter=overview.total_meetings_before_filter,
        )
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected daily overview failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build daily overview",
        ) from exc


@router.post(
    "/admin/bookings/{booking_id}/approve",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def approve_booking(
    booking_id: int,
    payload: DecisionRequest,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(require_admin),
) -> BookingResponse:
    try:
        booking = service.approve(
            booking_id,
            admin_id=_acting_admin_id(session),
            reason=payload.reason,
            session=session,
        )
        return booking_to_response(booking)
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except BookingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except DraftConflictError as exc:
        raise conflict_http_exception(exc) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except HTTPException:
        raise
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected approval failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve booking",
        ) from exc


@router.post(
    "/admin/bookings/{booking_id}/reject",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def reject_booking(
    booking_id: int,
    payload: RejectRequest,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(require_admin),
) -> BookingResponse:
    try:
        booking = service.reject(
            booking_id,
            admin_id=_acting_admin_id(session),
            reason=payload.reason,
            session=session,
        )
        return booking_to_response(booking)
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except BookingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except HTTPException:
        raise
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected rejection failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reject booking",
        ) from exc


@router.post(
    "/admin/bookings/{booking_id}/reset",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def reset_booking(
    booking_id: int,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(require_admin),
) -> BookingResponse:
    try:
        return booking_to_response(service.reset_to_pending(booking_id, session=session))
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except BookingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected reset failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset booking",
        ) from exc


@router.put(
    "/admin/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def update_booking(
    booking_id: int,
    payload: BookingFormRequest,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(require_admin),
) -> BookingResponse:
    try:
        booking = service.update(booking_id, payload.to_draft(), session=session)
        return booking_to_response(booking)
    except (BookingNotFoundError, RoomNotFoundError) as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except BookingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except DraftConflictError as exc:
        raise conflict_http_exception(exc) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update booking",
        ) from exc


@router.delete(
    "/admin/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_booking(
    booking_id: int,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(require_admin),
) -> Response:
    try:
        service.cancel(booking_id, session=session)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking deletion failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete booking",
        ) from exc


@router.get(
    "/admin/bookings/{booking_id}/history",
    response_model=list[HistoryEntryResponse],
    status_code=status.HTTP_200_OK,
)
def booking_history(
    booking_id: int,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(require_admin),
) -> list[HistoryEntryResponse]:
    try:
        return [_history_row(entry) for entry in service.history(booking_id, session=session)]
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking history failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load booking history",
        ) from exc


@router.get(
    "/admin/history",
    response_model=HistoryPageResponse,
    status_code=status.HTTP_200_OK,
)
def list_history(
    limit: int = Query(default=50),
    offset: int = Query(default=0),
    action: Optional[HistoryAction] = Query(default=None),
    admin_id: Optional[int] = Query(default=None, gt=0),
    service: HistoryService = Depends(get_history_service),
    session: ApiSession = Depends(require_admin),
) -> HistoryPageResponse:
    try:
        page = service.list_history(
            session=session,
            limit=limit,
            offset=offset,
            action=action,
            admin_id=admin_id,
        )
        return HistoryPageResponse(
            entries=[_history_row(entry) for entry in page.entries],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
        )
    except HistoryValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected history listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load history",
        ) from exc


@router.get(
    "/admin/history/summary",
    response_model=HistorySummaryResponse,
    status_code=status.HTTP_200_OK,
)
def history_summary(
    service: HistoryService = Depends(get_history_service),
    session: ApiSession = Depends(require_admin),
) -> HistorySummaryResponse:
    try:
        summary = service.summary(session=session)
        return HistorySummaryResponse(
            action_counts=summary.action_counts,
            top_admins=summary.top_admins,
            recent_activity=summary.recent_activity,
        )
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected history summary failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load history summary",
        ) from exc
