"""Half-day occupancy semantics for booking time slots."""

from __future__ import annotations

from enum import Enum

from backend.domain.models import TimeSlot


class HalfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


_SLOT_LABELS = {
    TimeSlot.MORNING: "Morning (08:30-12:00)",
    TimeSlot.AFTERNOON: "Afternoon (13:00-17:00)",
    TimeSlot.FULL_DAY: "Full day (08:30-17:00)",
}


def occupies_morning(slot: TimeSlot) -> bool:
    return slot in (TimeSlot.MORNING, TimeSlot.FULL_DAY)


def occupies_afternoon(slot: TimeSlot) -> bool:
    return slot in (TimeSlot.AFTERNOON, TimeSlot.FULL_DAY)


def half_days(slot: TimeSlot) -> frozenset[HalfDay]:
    halves = set()
    if occupies_morning(slot):
        halves.add(HalfDay.MORNING)
    if occupies_afternoon(slot):
        halves.add(HalfDay.AFTERNOON)
    return frozenset(halves)


def slots_conflict(first: TimeSlot, second: TimeSlot) -> bool:
    """Two slots on the same room/date conflict iff their halves intersect."""
    return bool(half_days(first) & half_days(second))


def slot_label(slot: TimeSlot) -> str:
    return _SLOT_LABELS[slot]
