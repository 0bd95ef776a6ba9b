from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional, Sequence

import pytest

from backend.domain.models import (
    AdminIdentity,
    Booking,
    BookingDraft,
    BookingStatus,
    HistoryAction,
    HistoryEntry,
    HistoryPage,
    HistorySummary,
    Room,
    TimeSlot,
)
from backend.repository.booking_api_repository import (
    ApiSession,
    BookingApiAuthError,
    BookingApiError,
)
from backend.utils.config import get_settings


ADMIN = AdminIdentity(admin_id=7, username="admin", full_name="Site Admin")
ADMIN_PASSWORD = "secret-pass"


def make_booking(
    booking_id: int,
    *,
    room_id: int = 1,
    dates: Sequence[date] = (date(2026, 3, 10),),
    time_slot: TimeSlot = TimeSlot.MORNING,
    status: BookingStatus = BookingStatus.APPROVED,
    need_break: bool = False,
    meeting_title: str = "Weekly sync",
    booker_name: str = "Anan",
    room_name: Optional[str] = None,
) -> Booking:
    return Booking(
        booking_id=booking_id,
        room_id=room_id,
        dates=tuple(dates),
        time_slot=time_slot,
        status=status,
        booker_name=booker_name,
        department="Operations",
        phone_number="0812345678",
        meeting_title=meeting_title,
        need_break=need_break,
        booking_code=f"BK{booking_id:04d}",
        room_name=room_name,
    )


class FakeBookingRepository:
    """In-memory stand-in for ``BookingApiRepository``."""

    def __init__(
        self,
        rooms: Sequence[Room] = (),
        bookings: Sequence[Booking] = (),
    ) -> None:
        self.rooms = {room.room_id: room for room in rooms}
        self.bookings = {booking.booking_id: booking for booking in bookings}
        self.history: list[HistoryEntry] = []
        self.create_calls: list[tuple[TimeSlot, list[date]]] = []
        self.fail_create_after: Optional[int] = None
        self.closed = False
        self._next_id = max(self.bookings, default=0) + 1

    def close(self) -> None:
        self.closed = True

    def ping(self) -> bool:
        return True

    def list_rooms(self, *, session: ApiSession) -> list[Room]:
        return list(self.rooms.values())

    def get_room(self, room_id: int, *, session: ApiSession) -> Optional[Room]:
        return self.rooms.get(room_id)

    def list_bookings(
        self,
        *,
        session: ApiSession,
        status: Optional[BookingStatus] = None,
        room_id: Optional[int] = None,
    ) -> list[Booking]:
        return [
            booking
            for booking in self.bookings.values()
            if (status is None or booking.status is status)
            and (room_id is None or booking.room_id == room_id)
        ]

    def get_booking(self, booking_id: int, *, session: ApiSession) -> Optional[Booking]:
        return self.bookings.get(booking_id)

    def _store(self, draft: BookingDraft, booking_id: int, time_slot, dates, status) -> Booking:
        room = self.rooms.get(draft.room_id)
        booking = Booking(
            booking_id=booking_id,
            room_id=draft.room_id,
            dates=tuple(dates),
            time_slot=time_slot,
            status=status,
            booker_name=draft.booker_name,
            department=draft.department,
            phone_number=draft.phone_number,
            meeting_title=draft.meeting_title,
            need_break=draft.need_break,
            break_request=draft.break_request,
            booking_code=f"BK{booking_id:04d}",
            room_name=room.name if room is not None else None,
        )
        self.bookings[booking_id] = booking
        return booking

    def create_booking(self, draft, *, time_slot, dates, session) -> Booking:
        if self.fail_create_after is not None and len(self.create_calls) >= self.fail_create_after:
            raise BookingApiError("Booking API error (HTTP 500)", status_code=500)
        self.create_calls.append((time_slot, list(dates)))
        booking_id = self._next_id
        self._next_id += 1
        return self._store(draft, booking_id, time_slot, dates, BookingStatus.PENDING)

    def update_booking(self, booking_id, draft, *, time_slot, dates, session) -> Booking:
        current = self.bookings[booking_id]
        return self._store(draft, booking_id, time_slot, dates, current.status)

    def delete_booking(self, booking_id: int, *, session: ApiSession) -> None:
        del self.bookings[booking_id]

    def _decide(self, booking_id, status, action, admin_id, reason) -> Booking:
        booking = replace(self.bookings[booking_id], status=status)
        self.bookings[booking_id] = booking
        self.history.append(
            HistoryEntry(
                entry_id=len(self.history) + 1,
                booking_id=booking_id,
                admin_id=admin_id,
                action=action,
                created_at=datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
                reason=reason,
                booking_code=booking.booking_code,
            )
        )
        return booking

    def approve_booking(self, booking_id, *, admin_id, reason, session) -> Booking:
        return self._decide(booking_id, BookingStatus.APPROVED, HistoryAction.APPROVED, admin_id, reason)

    def reject_booking(self, booking_id, *, admin_id, reason, session) -> Booking:
        return self._decide(booking_id, BookingStatus.REJECTED, HistoryAction.REJECTED, admin_id, reason)

    def reset_booking(self, booking_id: int, *, session: ApiSession) -> Booking:
        booking = replace(self.bookings[booking_id], status=BookingStatus.PENDING)
        self.bookings[booking_id] = booking
        return booking

    def get_booking_history(self, booking_id: int, *, session: ApiSession) -> list[HistoryEntry]:
        return [entry for entry in self.history if entry.booking_id == booking_id]

    def list_history(self, *, session, limit=None, offset=None, action=None, admin_id=None) -> HistoryPage:
        entries = [
            entry
            for entry in self.history
            if (action is None or entry.action is action)
            and (admin_id is None or entry.admin_id == admin_id)
        ]
        start = offset or 0
        end = start + limit if limit else None
        return HistoryPage(entries=entries[start:end], total=len(entries), limit=limit or 0, offset=start)

    def get_history_summary(self, *, session: ApiSession) -> HistorySummary:
        counts: dict[str, int] = {}
        for entry in self.history:
            counts[entry.action.value] = counts.get(entry.action.value, 0) + 1
        return HistorySummary(action_counts=counts, top_admins=[], recent_activity=[])

    def login(self, username: str, password: str) -> ApiSession:
        if username != ADMIN.username or password != ADMIN_PASSWORD:
            raise BookingApiAuthError("Invalid credentials", status_code=401)
        return ApiSession(token="token-123", admin=ADMIN)

    def get_current_admin(self, *, session: ApiSession) -> AdminIdentity:
        if session.token != "token-123":
            raise BookingApiAuthError("Invalid token", status_code=401)
        return ADMIN


@pytest.fixture
def settings():
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def rooms() -> list[Room]:
    return [
        Room(room_id=1, name="Boardroom", capacity=20),
        Room(room_id=2, name="Atrium", capacity=12),
        Room(room_id=3, name="Closed Lab", capacity=8, is_active=False),
    ]


@pytest.fixture
def fake_repository(rooms) -> FakeBookingRepository:
    return FakeBookingRepository(rooms=rooms)
