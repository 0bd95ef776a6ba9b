"""HTTP controller layer for room availability and booking submission."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.controllers.dependencies import (
    get_availability_service,
    get_booking_service,
    public_session,
    upstream_http_exception,
)
from backend.domain.models import (
    Booking,
    BookingDraft,
    BreakRequest,
    DayAvailability,
    DraftDay,
    DraftValidationResult,
    TimeSlot,
)
from backend.repository.booking_api_repository import (
    ApiSession,
    BookingApiError,
    BookingApiUnavailableError,
)
from backend.services.availability_service import (
    AvailabilityService,
    AvailabilityValidationError,
    RoomNotFoundError,
)
from backend.services.booking_service import (
    BookingSubmissionError,
    BookingValidationError,
    BookingWorkflowService,
    DraftConflictError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["booking"])

PHONE_NUMBER_PATTERN = r"^(?:[0-9]{5}|[0-9]{9,10})$"


class BookingDayRequest(BaseModel):
    date: date
    time_slot: TimeSlot


class BookingFormRequest(BaseModel):
    """Booking form payload; string form values are converted here, once."""

    model_config = ConfigDict(str_strip_whitespace=True)

    room_id: int = Field(gt=0)
    booker_name: str = Field(min_length=2, max_length=100)
    phone_number: str = Field(pattern=PHONE_NUMBER_PATTERN)
    meeting_title: str = Field(min_length=3, max_length=200)
    department: str = Field(min_length=2, max_length=100)
    need_break: bool = False
    break_organizer: Optional[str] = Field(default=None, max_length=50)
    break_details: Optional[str] = Field(default=None, max_length=500)
    days: list[BookingDayRequest] = Field(default_factory=list)

    @field_validator("need_break", mode="before")
    @classmethod
    def parse_need_break(cls, value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise ValueError("need_break must be true/false or the strings 'true'/'false'")

    @field_validator("break_organizer", "break_details", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def require_break_organizer(self) -> "BookingFormRequest":
        if self.need_break and not self.break_organizer:
            raise ValueError("break_organizer is required when a break is requested")
        return self

    def to_draft(self) -> BookingDraft:
        return BookingDraft(
            room_id=self.room_id,
            days=tuple(DraftDay(date=day.date, time_slot=day.time_slot) for day in self.days),
            booker_name=self.booker_name,
            department=self.department,
            phone_number=self.phone_number,
            meeting_title=self.meeting_title,
            need_break=self.need_break,
            break_request=(
                BreakRequest(organizer=self.break_organizer, details=self.break_details)
                if self.need_break
                else BreakRequest()
            ),
        )


class ViolationResponse(BaseModel):
    date: Optional[date]
    time_slot: Optional[TimeSlot]
    reason: str


class DraftValidationResponse(BaseModel):
    room_id: int
    accepted: bool
    violations: list[ViolationResponse]


class BookingResponse(BaseModel):
    id: int
    booking_code: str
    room_id: int
    room_name: Optional[str] = None
    dates: list[date]
    time_slot: TimeSlot
    status: str
    booker_name: str
    department: str
    phone_number: str
    meeting_title: str
    need_break: bool
    break_organizer: Optional[str] = None
    break_details: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateBookingResponse(BaseModel):
    bookings: list[BookingResponse]


class RoomResponse(BaseModel):
    room_id: int = Field(gt=0)
    name: str
    capacity: int = Field(ge=0)
    is_active: bool
    description: Optional[str] = None


class DayAvailabilityResponse(BaseModel):
    room_id: int
    date: date
    status: DayAvailability
    occupied_slots: list[TimeSlot]
    available_slots: list[TimeSlot]


class CalendarDayResponse(BaseModel):
    date: date
    in_month: bool
    status: DayAvailability
    available_slots: list[TimeSlot]
    occupied_slots: list[TimeSlot]


class CalendarResponse(BaseModel):
    room_id: int
    year: int
    month: int
    weeks: list[list[CalendarDayResponse]]


def booking_to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.booking_id,
        booking_code=booking.booking_code,
        room_id=booking.room_id,
        room_name=booking.room_name,
        dates=list(booking.dates),
        time_slot=booking.time_slot,
        status=booking.status.value,
        booker_name=booking.booker_name,
        department=booking.department,
        phone_number=booking.phone_number,
        meeting_title=booking.meeting_title,
        need_break=booking.need_break,
        break_organizer=booking.break_request.organizer,
        break_details=booking.break_request.details,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


def validation_to_response(result: DraftValidationResult) -> DraftValidationResponse:
    return DraftValidationResponse(
        room_id=result.room_id,
        accepted=result.accepted,
        violations=[
            ViolationResponse(date=item.date, time_slot=item.time_slot, reason=item.reason)
            for item in result.violations
        ],
    )


def conflict_http_exception(exc: DraftConflictError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": str(exc),
            "violations": [
                {
                    "date": item.date.isoformat() if item.date is not None else None,
                    "time_slot": item.time_slot.value if item.time_slot is not None else None,
                    "reason": item.reason,
                }
                for item in exc.result.violations
            ],
        },
    )


@router.get("/health", status_code=status.HTTP_200_OK)
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/rooms", response_model=list[RoomResponse], status_code=status.HTTP_200_OK)
def list_rooms(
    include_inactive: bool = Query(default=False),
    service: AvailabilityService = Depends(get_availability_service),
    session: ApiSession = Depends(public_session),
) -> list[RoomResponse]:
    try:
        rooms = service.list_rooms(session=session, include_inactive=include_inactive)
        return [
            RoomResponse(
                room_id=room.room_id,
                name=room.name,
                capacity=room.capacity,
                is_active=room.is_active,
                description=room.description,
            )
            for room in rooms
        ]
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list rooms",
        ) from exc


@router.get(
    "/rooms/{room_id}/availability",
    response_model=DayAvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
def room_availability(
    room_id: int,
    day: date = Query(alias="date"),
    service: AvailabilityService = Depends(get_availability_service),
    session: ApiSession = Depends(public_session),
) -> DayAvailabilityResponse:
    try:
        result = service.get_day_availability(room_id=room_id, day=day, session=session)
        return DayAvailabilityResponse(**result)
    except RoomNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected availability failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute availability",
        ) from exc


@router.get(
    "/rooms/{room_id}/calendar",
    response_model=CalendarResponse,
    status_code=status.HTTP_200_OK,
)
def room_calendar(
    room_id: int,
    year: int = Query(ge=1, le=9999),
    month: int = Query(ge=1, le=12),
    service: AvailabilityService = Depends(get_availability_service),
    session: ApiSession = Depends(public_session),
) -> CalendarResponse:
    try:
        result = service.get_month_calendar(
            room_id=room_id,
            year=year,
            month=month,
            session=session,
        )
        return CalendarResponse(**result)
    except AvailabilityValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RoomNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected calendar failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build calendar",
        ) from exc


@router.post(
    "/bookings/validate",
    response_model=DraftValidationResponse,
    status_code=status.HTTP_200_OK,
)
def validate_booking(
    payload: BookingFormRequest,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(public_session),
) -> DraftValidationResponse:
    """Pre-check every requested day; conflicts are returned, not raised."""
    try:
        result = service.preview(payload.to_draft(), session=session)
        return validation_to_response(result)
    except RoomNotFoundError as exc:
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
        logger.exception("Unexpected draft validation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to validate booking",
        ) from exc


@router.post(
    "/bookings",
    response_model=CreateBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    payload: BookingFormRequest,
    service: BookingWorkflowService = Depends(get_booking_service),
    session: ApiSession = Depends(public_session),
) -> CreateBookingResponse:
    try:
        receipt = service.submit(payload.to_draft(), session=session)
        return CreateBookingResponse(
            bookings=[booking_to_response(booking) for booking in receipt.bookings]
        )
    except DraftConflictError as exc:
        raise conflict_http_exception(exc) from exc
    except RoomNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except BookingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except BookingSubmissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(exc),
                "created_booking_ids": [booking.booking_id for booking in exc.created],
            },
        ) from exc
    except (BookingApiError, BookingApiUnavailableError) as exc:
        raise upstream_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking submission failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit booking",
        ) from exc
