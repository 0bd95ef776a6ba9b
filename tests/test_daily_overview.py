from __future__ import annotations

from dataclasses import replace
from datetime import date

from backend.domain.models import BookingStatus, DailyMeeting, TimeSlot
from backend.repository.booking_api_repository import ApiSession
from backend.services.daily_overview_service import (
    DailyOverviewService,
    compute_stats,
    filter_meetings,
    project_to_date,
)
from conftest import make_booking


DAY = date(2026, 3, 10)


def _meeting(booking_id: int, room_id: int, capacity: int, **overrides) -> DailyMeeting:
    meeting = DailyMeeting(
        booking_id=booking_id,
        booking_code=f"BK{booking_id:04d}",
        date=DAY,
        time_slot=TimeSlot.MORNING,
        room_id=room_id,
        room_name=f"Room {room_id}",
        capacity=capacity,
        meeting_title="Planning",
        booker_name="Anan",
        phone_number="0812345678",
        department="Operations",
        status=BookingStatus.APPROVED,
        need_break=False,
        break_organizer=None,
        break_details=None,
        dates=(DAY,),
    )
    return replace(meeting, **overrides)


def test_compute_stats_scenario() -> None:
    meetings = [
        _meeting(1, room_id=1, capacity=10),
        _meeting(2, room_id=1, capacity=10, status=BookingStatus.PENDING),
        _meeting(3, room_id=2, capacity=20, need_break=True),
    ]
    stats = compute_stats(meetings, total_active_room_count=5)
    assert stats.total_meetings == 3
    assert stats.rooms_in_use == 2
    assert stats.total_attendees == 40
    assert stats.pending_approvals == 1
    assert stats.break_requests == 1
    assert stats.total_rooms == 5


def test_compute_stats_empty_day() -> None:
    stats = compute_stats([], total_active_room_count=3)
    assert (stats.total_meetings, stats.rooms_in_use, stats.total_attendees) == (0, 0, 0)


def test_project_to_date_keeps_every_status_and_sorts(rooms) -> None:
    bookings = [
        make_booking(1, room_id=1, time_slot=TimeSlot.FULL_DAY, status=BookingStatus.REJECTED),
        make_booking(2, room_id=1, time_slot=TimeSlot.AFTERNOON),
        make_booking(3, room_id=2, time_slot=TimeSlot.AFTERNOON, status=BookingStatus.PENDING),
        make_booking(4, room_id=1, time_slot=TimeSlot.MORNING),
        make_booking(5, room_id=1, dates=(date(2026, 3, 11),)),
    ]
    meetings = project_to_date(bookings, rooms, DAY)
    assert [meeting.booking_id for meeting in meetings] == [4, 3, 2, 1]
    assert {meeting.status for meeting in meetings} == {
        BookingStatus.APPROVED,
        BookingStatus.PENDING,
        BookingStatus.REJECTED,
    }
    assert all(meeting.date == DAY for meeting in meetings)


def test_project_to_date_uses_placeholder_for_unknown_room(rooms) -> None:
    meetings = project_to_date([make_booking(1, room_id=42)], rooms, DAY)
    assert meetings[0].room_name == "Room 42"
    assert meetings[0].capacity is None


def test_project_to_date_prefers_embedded_room_name(rooms) -> None:
    meetings = project_to_date(
        [make_booking(1, room_id=1, room_name="Boardroom (East)")],
        rooms,
        DAY,
    )
    assert meetings[0].room_name == "Boardroom (East)"
    assert meetings[0].capacity == 20


def test_filter_meetings_by_status_room_and_search() -> None:
    meetings = [
        _meeting(1, room_id=1, capacity=10, meeting_title="Budget Review"),
        _meeting(2, room_id=2, capacity=10, status=BookingStatus.PENDING),
        _meeting(3, room_id=2, capacity=10, booker_name="Somchai"),
    ]
    assert [m.booking_id for m in filter_meetings(meetings, status=BookingStatus.PENDING)] == [2]
    assert [m.booking_id for m in filter_meetings(meetings, room_id=2)] == [2, 3]
    assert [m.booking_id for m in filter_meetings(meetings, search="  budget ")] == [1]
    assert [m.booking_id for m in filter_meetings(meetings, search="SOMCHAI")] == [3]
    assert filter_meetings(meetings) == meetings


def test_service_stats_ignore_listing_filters(rooms, fake_repository, settings) -> None:
    fake_repository.bookings = {
        1: make_booking(1, room_id=1, status=BookingStatus.PENDING),
        2: make_booking(2, room_id=2, time_slot=TimeSlot.AFTERNOON, need_break=True),
    }
    service = DailyOverviewService(repository=fake_repository, settings=settings)
    overview = service.get_overview(
        day=DAY,
        session=ApiSession(token="token-123"),
        status=BookingStatus.PENDING,
    )
    assert [meeting.booking_id for meeting in overview.meetings] == [1]
    assert overview.total_meetings_before_filter == 2
    assert overview.stats.total_meetings == 2
    assert overview.stats.total_attendees == 32
    # Closed Lab is inactive
    assert overview.stats.total_rooms == 2


def test_service_uses_configured_placeholder(fake_repository, settings) -> None:
    fake_repository.bookings = {1: make_booking(1, room_id=77)}
    service = DailyOverviewService(
        repository=fake_repository,
        settings=replace(settings, booking_unknown_room_label="Unlisted #{room_id}"),
    )
    overview = service.get_overview(day=DAY, session=ApiSession(token="token-123"))
    assert overview.meetings[0].room_name == "Unlisted #77"
