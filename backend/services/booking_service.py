"""Booking draft validation and the booking/approval workflow."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Optional

from backend.domain.constraints import policy_from_settings
from backend.domain.models import (
    Booking,
    BookingDraft,
    BookingStatus,
    DraftDay,
    DraftValidationResult,
    DraftViolation,
    HistoryEntry,
    TimeSlot,
)
from backend.domain.slots import slot_label
from backend.repository.booking_api_repository import (
    ApiSession,
    BookingApiError,
    BookingApiRepository,
)
from backend.services.availability_service import RoomNotFoundError, is_slot_available
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

NO_DATES_SELECTED = "no dates selected"


class BookingValidationError(Exception):
    """Raised when a booking request is malformed before availability checks."""


class BookingNotFoundError(Exception):
    """Raised when a booking id does not exist upstream."""


class DraftConflictError(Exception):
    """Raised by submission when the draft collides with existing bookings."""

    def __init__(self, result: DraftValidationResult) -> None:
        super().__init__(
            f"{len(result.violations)} selected date(s) are no longer available"
        )
        self.result = result


class BookingSubmissionError(Exception):
    """Raised when the booking API fails part-way through a submission."""

    def __init__(self, message: str, created: Sequence[Booking]) -> None:
        super().__init__(message)
        self.created = list(created)


def _unavailable_reason(day: DraftDay) -> str:
    return f"{slot_label(day.time_slot)} slot unavailable on {day.date.isoformat()}"


def validate_draft(
    room_id: int,
    days: Sequence[DraftDay],
    existing_bookings: Iterable[Booking],
) -> DraftValidationResult:
    """Check every requested day against the room's current bookings.

    All days are evaluated so the caller can report every conflict at once.
    Duplicate days are evaluated independently and are not merged here.
    """
    room_bookings = [booking for booking in existing_bookings if booking.room_id == room_id]
    requested = tuple(days)
    if not requested:
        return DraftValidationResult(
            room_id=room_id,
            days=(),
            violations=(
                DraftViolation(date=None, time_slot=None, reason=NO_DATES_SELECTED),
            ),
        )

    violations = tuple(
        DraftViolation(date=day.date, time_slot=day.time_slot, reason=_unavailable_reason(day))
        for day in requested
        if not is_slot_available(day.date, day.time_slot, room_bookings)
    )
    return DraftValidationResult(room_id=room_id, days=requested, violations=violations)


def group_days_by_slot(days: Sequence[DraftDay]) -> list[tuple[TimeSlot, list[date]]]:
    """Group draft days into one booking per slot, keeping first-seen order."""
    grouped: dict[TimeSlot, list[date]] = {}
    for day in days:
        grouped.setdefault(day.time_slot, []).append(day.date)
    return list(grouped.items())


def status_counts(bookings: Iterable[Booking]) -> dict[str, int]:
    counts = Counter(booking.status.value for booking in bookings)
    result = {status.value: counts.get(status.value, 0) for status in BookingStatus}
    result["all"] = sum(counts.values())
    return result


@dataclass(frozen=True)
class SubmissionReceipt:
    bookings: list[Booking]
    validation: DraftValidationResult


class BookingWorkflowService:
    """Coordinates preview -> submit for bookers and approve/reject for admins."""

    def __init__(
        self,
        repository: Optional[BookingApiRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._policy = policy_from_settings(self._settings)
        self._repository = repository or BookingApiRepository(self._settings)

    def _room_bookings(self, room_id: int, session: ApiSession) -> list[Booking]:
        return self._repository.list_bookings(session=session, room_id=room_id)

    def _check_shape(self, draft: BookingDraft) -> None:
        if len(draft.days) > self._policy.max_dates_per_booking:
            raise BookingValidationError(
                f"A booking may cover at most {self._policy.max_dates_per_booking} dates"
            )
        duplicated = sorted(
            day for day, count in Counter(item.date for item in draft.days).items() if count > 1
        )
        if duplicated:
            raise BookingValidationError(
                "Each date may appear only once per booking: "
                + ", ".join(day.isoformat() for day in duplicated)
            )

    def _check_room(self, room_id: int, session: ApiSession) -> None:
        room = self._repository.get_room(room_id, session=session)
        if room is None:
            raise RoomNotFoundError(f"room_id {room_id} does not exist")
        if not room.is_active:
            raise BookingValidationError(f"Room {room.name} is not open for bookings")

    def preview(self, draft: BookingDraft, *, session: ApiSession) -> DraftValidationResult:
        """Check a draft exactly as submission would, without creating anything."""
        self._check_shape(draft)
        self._check_room(draft.room_id, session)
        return validate_draft(draft.room_id, draft.days, self._room_bookings(draft.room_id, session))

    def submit(self, draft: BookingDraft, *, session: ApiSession) -> SubmissionReceipt:
        # Fresh snapshot: the booking API stays authoritative for races between sessions.
        result = self.preview(draft, session=session)
        if not result.accepted:
            logger.info(
                "Draft for room %s rejected with %s conflict(s)",
                draft.room_id,
                len(result.violations),
            )
            raise DraftConflictError(result)

        created: list[Booking] = []
        for time_slot, dates in group_days_by_slot(draft.days):
            try:
                created.append(
                    self._repository.create_booking(
                        draft,
                        time_slot=time_slot,
                        dates=dates,
                        session=session,
                    )
                )
            except BookingApiError as exc:
                if not created:
                    raise
                logger.error(
                    "Booking submission for room %s failed after %s booking(s): %s",
                    draft.room_id,
                    len(created),
                    exc,
                )
                raise BookingSubmissionError(
                    f"Booking API failed after {len(created)} booking(s) were created: {exc}",
                    created,
                ) from exc
        return SubmissionReceipt(bookings=created, validation=result)

    def list_bookings(
        self,
        *,
        session: ApiSession,
        status: Optional[BookingStatus] = None,
        room_id: Optional[int] = None,
    ) -> dict[str, object]:
        everything = self._repository.list_bookings(session=session, room_id=room_id)
        selected = [
            booking for booking in everything if status is None or booking.status is status
        ]
        selected.sort(
            key=lambda booking: (
                min(booking.dates) if booking.dates else date.max,
                booking.time_slot.display_rank,
                booking.booking_id,
            )
        )
        return {"bookings": selected, "counts": status_counts(everything)}

    def _require_booking(self, booking_id: int, session: ApiSession) -> Booking:
        booking = self._repository.get_booking(booking_id, session=session)
        if booking is None:
            raise BookingNotFoundError(f"booking_id {booking_id} does not exist")
        return booking

    def approve(
        self,
        booking_id: int,
        *,
        admin_id: int,
        reason: Optional[str],
        session: ApiSession,
    ) -> Booking:
        booking = self._require_booking(booking_id, session)
        if booking.status is BookingStatus.APPROVED:
            raise BookingValidationError(f"Booking {booking_id} is already approved")
        if booking.status is not BookingStatus.PENDING:
            # Re-approving a rejected/cancelled booking must not double-book its slot.
            others = [
                other
                for other in self._room_bookings(booking.room_id, session)
                if other.booking_id != booking.booking_id
            ]
            result = validate_draft(
                booking.room_id,
                [DraftDay(date=day, time_slot=booking.time_slot) for day in booking.dates],
                others,
            )
            if not result.accepted:
                raise DraftConflictError(result)
        approved = self._repository.approve_booking(
            booking_id,
            admin_id=admin_id,
            reason=reason,
            session=session,
        )
        logger.info("Booking %s approved by admin %s", booking_id, admin_id)
        return approved

    def reject(
        self,
        booking_id: int,
        *,
        admin_id: int,
        reason: str,
        session: ApiSession,
    ) -> Booking:
        if not reason or not reason.strip():
            raise BookingValidationError("A rejection needs a reason")
        booking = self._require_booking(booking_id, session)
        if booking.status is BookingStatus.REJECTED:
            raise BookingValidationError(f"Booking {booking_id} is already rejected")
        rejected = self._repository.reject_booking(
            booking_id,
            admin_id=admin_id,
            reason=reason,
            session=session,
        )
        logger.info("Booking %s rejected by admin %s", booking_id, admin_id)
        return rejected

    def reset_to_pending(self, booking_id: int, *, session: ApiSession) -> Booking:
        booking = self._require_booking(booking_id, session)
        if booking.status is BookingStatus.PENDING:
            raise BookingValidationError(f"Booking {booking_id} is already pending")
        return self._repository.reset_booking(booking_id, session=session)

    def cancel(self, booking_id: int, *, session: ApiSession) -> None:
        self._require_booking(booking_id, session)
        self._repository.delete_booking(booking_id, session=session)
        logger.info("Booking %s deleted", booking_id)

    def update(
        self,
        booking_id: int,
        draft: BookingDraft,
        *,
        session: ApiSession,
    ) -> Booking:
        """Replace a booking's details; every day must share one time slot."""
        current = self._require_booking(booking_id, session)
        self._check_shape(draft)
        if not draft.days:
            raise BookingValidationError(NO_DATES_SELECTED)
        slots = {day.time_slot for day in draft.days}
        if len(slots) != 1:
            raise BookingValidationError("An edited booking must use one time slot for all dates")
        if draft.room_id != current.room_id:
            self._check_room(draft.room_id, session)

        others = [
            booking
            for booking in self._room_bookings(draft.room_id, session)
            if booking.booking_id != booking_id
        ]
        result = validate_draft(draft.room_id, draft.days, others)
        if not result.accepted:
            raise DraftConflictError(result)

        return self._repository.update_booking(
            booking_id,
            draft,
            time_slot=slots.pop(),
            dates=[day.date for day in draft.days],
            session=session,
        )

    def history(self, booking_id: int, *, session: ApiSession) -> list[HistoryEntry]:
        self._require_booking(booking_id, session)
        return self._repository.get_booking_history(booking_id, session=session)
