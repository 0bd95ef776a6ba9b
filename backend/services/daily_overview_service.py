"""Cross-room daily overview: meetings on one date and their statistics."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Optional

from backend.domain.constraints import policy_from_settings
from backend.domain.models import (
    Booking,
    BookingStatus,
    DailyMeeting,
    DailyOverview,
    DailyStats,
    Room,
)
from backend.repository.booking_api_repository import ApiSession, BookingApiRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

DEFAULT_UNKNOWN_ROOM_LABEL = "Room {room_id}"


def _to_daily_meeting(
    booking: Booking,
    day: date,
    room: Optional[Room],
    unknown_room_label: str,
) -> DailyMeeting:
    room_name = booking.room_name or (room.name if room is not None else None)
    if not room_name:
        room_name = unknown_room_label.format(room_id=booking.room_id)
    return DailyMeeting(
        booking_id=booking.booking_id,
        booking_code=booking.booking_code,
        date=day,
        time_slot=booking.time_slot,
        room_id=booking.room_id,
        room_name=room_name,
        capacity=room.capacity if room is not None else None,
        meeting_title=booking.meeting_title,
        booker_name=booking.booker_name,
        phone_number=booking.phone_number,
        department=booking.department,
        status=booking.status,
        need_break=booking.need_break,
        break_organizer=booking.break_request.organizer,
        break_details=booking.break_request.details,
        dates=booking.dates,
        created_at=booking.created_at,
    )


def project_to_date(
    bookings: Iterable[Booking],
    rooms: Iterable[Room],
    day: date,
    unknown_room_label: str = DEFAULT_UNKNOWN_ROOM_LABEL,
) -> list[DailyMeeting]:
    """Project every booking covering ``day`` onto that day, any status.

    Sorted by time slot, then by room name.
    """
    rooms_by_id = {room.room_id: room for room in rooms}
    meetings = [
        _to_daily_meeting(booking, day, rooms_by_id.get(booking.room_id), unknown_room_label)
        for booking in bookings
        if booking.covers(day)
    ]
    meetings.sort(
        key=lambda meeting: (
            meeting.time_slot.display_rank,
            meeting.room_name.casefold(),
            meeting.room_name,
        )
    )
    return meetings


def compute_stats(meetings: Sequence[DailyMeeting], total_active_room_count: int) -> DailyStats:
    # total_attendees sums room capacity; actual headcount is never collected.
    return DailyStats(
        total_meetings=len(meetings),
        rooms_in_use=len({meeting.room_id for meeting in meetings}),
        total_rooms=total_active_room_count,
        total_attendees=sum(meeting.capacity or 0 for meeting in meetings),
        pending_approvals=sum(
            1 for meeting in meetings if meeting.status is BookingStatus.PENDING
        ),
        break_requests=sum(1 for meeting in meetings if meeting.need_break),
    )


def filter_meetings(
    meetings: Iterable[DailyMeeting],
    *,
    status: Optional[BookingStatus] = None,
    room_id: Optional[int] = None,
    search: Optional[str] = None,
) -> list[DailyMeeting]:
    needle = (search or "").strip().casefold()
    selected: list[DailyMeeting] = []
    for meeting in meetings:
        if status is not None and meeting.status is not status:
            continue
        if room_id is not None and meeting.room_id != room_id:
            continue
        if needle and not any(
            needle in text.casefold()
            for text in (meeting.meeting_title, meeting.booker_name, meeting.room_name)
        ):
            continue
        selected.append(meeting)
    return selected


class DailyOverviewService:
    """Builds the admin daily overview from live room and booking snapshots."""

    def __init__(
        self,
        repository: Optional[BookingApiRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._policy = policy_from_settings(self._settings)
        self._repository = repository or BookingApiRepository(self._settings)

    def get_overview(
        self,
        *,
        day: date,
        session: ApiSession,
        status: Optional[BookingStatus] = None,
        room_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> DailyOverview:
        rooms = self._repository.list_rooms(session=session)
        bookings = self._repository.list_bookings(session=session)
        meetings = project_to_date(
            bookings,
            rooms,
            day,
            unknown_room_label=self._policy.unknown_room_label,
        )
        # Stats describe the whole day; filters only narrow the listing.
        stats = compute_stats(meetings, sum(1 for room in rooms if room.is_active))
        filtered = filter_meetings(meetings, status=status, room_id=room_id, search=search)
        logger.info(
            "Daily overview for %s: %s meetings (%s after filters)",
            day.isoformat(),
            len(meetings),
            len(filtered),
        )
        return DailyOverview(
            date=day,
            meetings=filtered,
            stats=stats,
            total_meetings_before_filter=len(meetings),
        )
