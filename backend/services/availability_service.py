"""Room availability engine: occupied and bookable slots per room and day."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date
from typing import Any, Optional

from backend.domain.models import (
    SLOTS_IN_DISPLAY_ORDER,
    Booking,
    CalendarDay,
    DayAvailability,
    Room,
    TimeSlot,
)
from backend.domain.slots import HalfDay, half_days
from backend.repository.booking_api_repository import ApiSession, BookingApiRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_BOTH_HALVES = frozenset({HalfDay.MORNING, HalfDay.AFTERNOON})


class AvailabilityValidationError(Exception):
    """Raised when an availability query is malformed."""


class RoomNotFoundError(Exception):
    """Raised when availability is requested for an unknown room."""


def occupied_slots(day: date, bookings: Iterable[Booking]) -> frozenset[TimeSlot]:
    """Return the declared slots held on ``day`` by pending/approved bookings.

    The result is not expanded into half-days: a single morning booking
    yields ``{morning}``.
    """
    return frozenset(
        booking.time_slot
        for booking in bookings
        if booking.status.occupies_room and booking.covers(day)
    )


def _taken_halves(occupied: Iterable[TimeSlot]) -> frozenset[HalfDay]:
    taken: set[HalfDay] = set()
    for slot in occupied:
        taken.update(half_days(slot))
    return frozenset(taken)


def available_slots(day: date, bookings: Iterable[Booking]) -> tuple[TimeSlot, ...]:
    """Return the slots still bookable on ``day`` in display order."""
    taken = _taken_halves(occupied_slots(day, bookings))
    if not taken:
        return SLOTS_IN_DISPLAY_ORDER
    if taken == _BOTH_HALVES:
        return ()
    return tuple(slot for slot in SLOTS_IN_DISPLAY_ORDER if not half_days(slot) & taken)


def is_slot_available(day: date, slot: TimeSlot, bookings: Iterable[Booking]) -> bool:
    taken = _taken_halves(occupied_slots(day, bookings))
    return not half_days(slot) & taken


def day_availability_status(day: date, bookings: Iterable[Booking]) -> DayAvailability:
    """Classify ``day`` for calendar colouring.

    ``full`` covers both a full-day booking and two separate half-day
    bookings, so it always coincides with an empty ``available_slots``.
    """
    taken = _taken_halves(occupied_slots(day, bookings))
    if not taken:
        return DayAvailability.AVAILABLE
    if taken == _BOTH_HALVES:
        return DayAvailability.FULL
    return DayAvailability.PARTIAL


def month_calendar(
    year: int,
    month: int,
    bookings: Iterable[Booking],
) -> list[list[CalendarDay]]:
    """Build Sunday-first calendar weeks covering ``year``/``month``."""
    weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdatescalendar(year, month)
    first_day, last_day = weeks[0][0], weeks[-1][-1]
    visible = [
        booking
        for booking in bookings
        if booking.status.occupies_room
        and any(first_day <= day <= last_day for day in booking.dates)
    ]

    grid: list[list[CalendarDay]] = []
    for week in weeks:
        row: list[CalendarDay] = []
        for day in week:
            row.append(
                CalendarDay(
                    date=day,
                    in_month=day.month == month,
                    status=day_availability_status(day, visible),
                    available_slots=available_slots(day, visible),
                    occupied_slots=occupied_slots(day, visible),
                )
            )
        grid.append(row)
    return grid


def _sorted_slots(slots: Iterable[TimeSlot]) -> list[str]:
    return [slot.value for slot in sorted(slots, key=lambda item: item.display_rank)]


class AvailabilityService:
    """Fetches a room's bookings and answers availability questions about it."""

    def __init__(
        self,
        repository: Optional[BookingApiRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or BookingApiRepository(self._settings)

    def list_rooms(self, *, session: ApiSession, include_inactive: bool = False) -> list[Room]:
        rooms = self._repository.list_rooms(session=session)
        if not include_inactive:
            rooms = [room for room in rooms if room.is_active]
        return sorted(rooms, key=lambda room: (room.name.casefold(), room.room_id))

    def room_bookings(self, room_id: int, *, session: ApiSession) -> list[Booking]:
        if self._repository.get_room(room_id, session=session) is None:
            raise RoomNotFoundError(f"room_id {room_id} does not exist")
        bookings = self._repository.list_bookings(session=session, room_id=room_id)
        # The upstream filter is advisory; never let another room's bookings leak in.
        return [booking for booking in bookings if booking.room_id == room_id]

    def get_day_availability(
        self,
        *,
        room_id: int,
        day: date,
        session: ApiSession,
    ) -> dict[str, Any]:
        bookings = self.room_bookings(room_id, session=session)
        return {
            "room_id": room_id,
            "date": day,
            "status": day_availability_status(day, bookings).value,
            "occupied_slots": _sorted_slots(occupied_slots(day, bookings)),
            "available_slots": [slot.value for slot in available_slots(day, bookings)],
        }

    def get_month_calendar(
        self,
        *,
        room_id: int,
        year: int,
        month: int,
        session: ApiSession,
    ) -> dict[str, Any]:
        if not 1 <= month <= 12:
            raise AvailabilityValidationError("month must be between 1 and 12")
        if not 1 <= year <= 9999:
            raise AvailabilityValidationError("year is out of range")

        bookings = self.room_bookings(room_id, session=session)
        grid = month_calendar(year, month, bookings)
        logger.debug(
            "Calendar built for room %s %04d-%02d from %s bookings",
            room_id,
            year,
            month,
            len(bookings),
        )
        return {
            "room_id": room_id,
            "year": year,
            "month": month,
            "weeks": [
                [
                    {
                        "date": cell.date,
                        "in_month": cell.in_month,
                        "status": cell.status.value,
                        "available_slots": [slot.value for slot in cell.available_slots],
                        "occupied_slots": _sorted_slots(cell.occupied_slots),
                    }
                    for cell in week
                ]
                for week in grid
            ],
        }
