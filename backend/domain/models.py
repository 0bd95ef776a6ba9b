"""Domain models for room availability, daily overview and booking drafts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class TimeSlot(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    FULL_DAY = "full_day"

    @property
    def display_rank(self) -> int:
        return _SLOT_DISPLAY_RANK[self]


# Display order only; occupancy semantics live in backend.domain.slots.
_SLOT_DISPLAY_RANK = {
    TimeSlot.MORNING: 1,
    TimeSlot.AFTERNOON: 2,
    TimeSlot.FULL_DAY: 3,
}

SLOTS_IN_DISPLAY_ORDER: tuple[TimeSlot, ...] = (
    TimeSlot.MORNING,
    TimeSlot.AFTERNOON,
    TimeSlot.FULL_DAY,
)


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def occupies_room(self) -> bool:
        return self in (BookingStatus.PENDING, BookingStatus.APPROVED)


class DayAvailability(str, Enum):
    AVAILABLE = "available"
    PARTIAL = "partial"
    FULL = "full"


class HistoryAction(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Room:
    room_id: int
    name: str
    capacity: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class BreakRequest:
    organizer: Optional[str] = None
    details: Optional[str] = None


@dataclass(frozen=True)
class Booking:
    booking_id: int
    room_id: int
    dates: tuple[date, ...]
    time_slot: TimeSlot
    status: BookingStatus
    booker_name: str
    department: str
    phone_number: str
    meeting_title: str
    need_break: bool = False
    break_request: BreakRequest = field(default_factory=BreakRequest)
    booking_code: str = ""
    room_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def covers(self, day: date) -> bool:
        return day in self.dates


@dataclass(frozen=True)
class DailyMeeting:
    booking_id: int
    booking_code: str
    date: date
    time_slot: TimeSlot
    room_id: int
    room_name: str
    capacity: Optional[int]
    meeting_title: str
    booker_name: str
    phone_number: str
    department: str
    status: BookingStatus
    need_break: bool
    break_organizer: Optional[str]
    break_details: Optional[str]
    dates: tuple[date, ...]
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class DailyStats:
    total_meetings: int
    rooms_in_use: int
    total_rooms: int
    total_attendees: int
    pending_approvals: int
    break_requests: int


@dataclass(frozen=True)
class DailyOverview:
    date: date
    meetings: list[DailyMeeting]
    stats: DailyStats
    total_meetings_before_filter: int


@dataclass(frozen=True)
class CalendarDay:
    date: date
    in_month: bool
    status: DayAvailability
    available_slots: tuple[TimeSlot, ...]
    occupied_slots: frozenset[TimeSlot]


@dataclass(frozen=True)
class DraftDay:
    date: date
    time_slot: TimeSlot


@dataclass(frozen=True)
class DraftViolation:
    # date/time_slot are None only for the "no dates selected" violation
    date: Optional[date]
    time_slot: Optional[TimeSlot]
    reason: str


@dataclass(frozen=True)
class DraftValidationResult:
    room_id: int
    days: tuple[DraftDay, ...]
    violations: tuple[DraftViolation, ...]

    @property
    def accepted(self) -> bool:
        return not self.violations


@dataclass(frozen=True)
class BookingDraft:
    """A booking request that has passed form validation but not submission."""

    room_id: int
    days: tuple[DraftDay, ...]
    booker_name: str
    department: str
    phone_number: str
    meeting_title: str
    need_break: bool = False
    break_request: BreakRequest = field(default_factory=BreakRequest)


@dataclass(frozen=True)
class AdminIdentity:
    admin_id: int
    username: str
    full_name: str


@dataclass(frozen=True)
class HistoryEntry:
    entry_id: int
    booking_id: int
    admin_id: int
    action: HistoryAction
    created_at: Optional[datetime]
    reason: Optional[str] = None
    booking_code: Optional[str] = None
    booker_name: Optional[str] = None
    room_name: Optional[str] = None
    admin_name: Optional[str] = None


@dataclass(frozen=True)
class HistoryPage:
    entries: list[HistoryEntry]
    total: int
    limit: int
    offset: int


@dataclass(frozen=True)
class HistorySummary:
    action_counts: dict[str, int]
    top_admins: list[dict[str, int | str]]
    recent_activity: list[dict[str, int | str]]
