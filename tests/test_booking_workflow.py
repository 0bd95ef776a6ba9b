"""Workflow tests for submission and admin decisions against an in-memory API."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from backend.domain.models import BookingDraft, BookingStatus, DraftDay, TimeSlot
from backend.repository.booking_api_repository import ApiSession, BookingApiError
from backend.services.availability_service import RoomNotFoundError
from backend.services.booking_service import (
    BookingNotFoundError,
    BookingSubmissionError,
    BookingValidationError,
    BookingWorkflowService,
    DraftConflictError,
)
from conftest import ADMIN, make_booking


D1, D2, D3 = date(2026, 3, 10), date(2026, 3, 11), date(2026, 3, 12)
PUBLIC = ApiSession.anonymous()
ADMIN_SESSION = ApiSession(token="token-123", admin=ADMIN)


def _draft(*days: DraftDay, room_id: int = 1) -> BookingDraft:
    return BookingDraft(
        room_id=room_id,
        days=tuple(days),
        booker_name="Anan",
        department="Operations",
        phone_number="0812345678",
        meeting_title="Quarterly planning",
    )


@pytest.fixture
def service(fake_repository, settings) -> BookingWorkflowService:
    return BookingWorkflowService(repository=fake_repository, settings=settings)


def test_submit_creates_one_booking_per_slot(service, fake_repository) -> None:
    receipt = service.submit(
        _draft(
            DraftDay(date=D1, time_slot=TimeSlot.MORNING),
            DraftDay(date=D2, time_slot=TimeSlot.FULL_DAY),
            DraftDay(date=D3, time_slot=TimeSlot.MORNING),
        ),
        session=PUBLIC,
    )
    assert fake_repository.create_calls == [
        (TimeSlot.MORNING, [D1, D3]),
        (TimeSlot.FULL_DAY, [D2]),
    ]
    assert [booking.status for booking in receipt.bookings] == [BookingStatus.PENDING] * 2
    assert receipt.validation.accepted


def test_submit_rejects_conflicts_without_creating(service, fake_repository) -> None:
    fake_repository.bookings[50] = make_booking(50, dates=(D2,), time_slot=TimeSlot.AFTERNOON)
    with pytest.raises(DraftConflictError) as excinfo:
        service.submit(
            _draft(
                DraftDay(date=D1, time_slot=TimeSlot.FULL_DAY),
                DraftDay(date=D2, time_slot=TimeSlot.FULL_DAY),
            ),
            session=PUBLIC,
        )
    assert [item.date for item in excinfo.value.result.violations] == [D2]
    assert fake_repository.create_calls == []


def test_submit_without_days_is_a_conflict(service) -> None:
    with pytest.raises(DraftConflictError) as excinfo:
        service.submit(_draft(), session=PUBLIC)
    assert excinfo.value.result.violations[0].reason == "no dates selected"


def test_submit_rejects_duplicate_dates(service, fake_repository) -> None:
    with pytest.raises(BookingValidationError, match="2026-03-10"):
        service.submit(
            _draft(
                DraftDay(date=D1, time_slot=TimeSlot.MORNING),
                DraftDay(date=D1, time_slot=TimeSlot.AFTERNOON),
            ),
            session=PUBLIC,
        )
    assert fake_repository.create_calls == []


def test_submit_enforces_max_dates(fake_repository, settings) -> None:
    service = BookingWorkflowService(
        repository=fake_repository,
        settings=replace(settings, booking_max_dates=2),
    )
    with pytest.raises(BookingValidationError):
        service.submit(
            _draft(*(DraftDay(date=day, time_slot=TimeSlot.MORNING) for day in (D1, D2, D3))),
            session=PUBLIC,
        )


def test_submit_to_unknown_or_inactive_room(service) -> None:
    with pytest.raises(RoomNotFoundError):
        service.submit(_draft(DraftDay(date=D1, time_slot=TimeSlot.MORNING), room_id=99), session=PUBLIC)
    with pytest.raises(BookingValidationError):
        service.submit(_draft(DraftDay(date=D1, time_slot=TimeSlot.MORNING), room_id=3), session=PUBLIC)


def test_partial_submission_reports_created_bookings(service, fake_repository) -> None:
    fake_repository.fail_create_after = 1
    with pytest.raises(BookingSubmissionError) as excinfo:
        service.submit(
            _draft(
                DraftDay(date=D1, time_slot=TimeSlot.MORNING),
                DraftDay(date=D2, time_slot=TimeSlot.AFTERNOON),
            ),
            session=PUBLIC,
        )
    assert len(excinfo.value.created) == 1
    assert excinfo.value.created[0].time_slot is TimeSlot.MORNING


def test_first_create_failure_propagates_upstream_error(service, fake_repository) -> None:
    fake_repository.fail_create_after = 0
    with pytest.raises(BookingApiError):
        service.submit(_draft(DraftDay(date=D1, time_slot=TimeSlot.MORNING)), session=PUBLIC)


def test_approve_pending_booking_records_history(service, fake_repository) -> None:
    fake_repository.bookings[10] = make_booking(10, status=BookingStatus.PENDING)
    approved = service.approve(10, admin_id=ADMIN.admin_id, reason="ok", session=ADMIN_SESSION)
    assert approved.status is BookingStatus.APPROVED
    history = service.history(10, session=ADMIN_SESSION)
    assert [(entry.action.value, entry.reason) for entry in history] == [("approved", "ok")]


def test_approve_twice_is_rejected(service, fake_repository) -> None:
    fake_repository.bookings[10] = make_booking(10, status=BookingStatus.APPROVED)
    with pytest.raises(BookingValidationError):
        service.approve(10, admin_id=ADMIN.admin_id, reason=None, session=ADMIN_SESSION)


def test_reapproving_rejected_booking_revalidates(service, fake_repository) -> None:
    fake_repository.bookings[10] = make_booking(10, time_slot=TimeSlot.FULL_DAY, status=BookingStatus.REJECTED)
    fake_repository.bookings[11] = make_booking(11, time_slot=TimeSlot.MORNING, status=BookingStatus.PENDING)
    with pytest.raises(DraftConflictError):
        service.approve(10, admin_id=ADMIN.admin_id, reason=None, session=ADMIN_SESSION)
    assert fake_repository.bookings[10].status is BookingStatus.REJECTED


def test_unknown_booking_raises_not_found(service) -> None:
    with pytest.raises(BookingNotFoundError):
        service.reject(404, admin_id=ADMIN.admin_id, reason="Double booked", session=ADMIN_SESSION)
    with pytest.raises(BookingNotFoundError):
        service.cancel(404, session=ADMIN_SESSION)


def test_reset_to_pending(service, fake_repository) -> None:
    fake_repository.bookings[10] = make_booking(10, status=BookingStatus.REJECTED)
    assert service.reset_to_pending(10, session=ADMIN_SESSION).status is BookingStatus.PENDING
    with pytest.raises(BookingValidationError):
        service.reset_to_pending(10, session=ADMIN_SESSION)


def test_update_ignores_the_booking_being_edited(service, fake_repository) -> None:
    fake_repository.bookings[10] = make_booking(10, dates=(D1,), time_slot=TimeSlot.MORNING)
    updated = service.update(
        10,
        _draft(
            DraftDay(date=D1, time_slot=TimeSlot.FULL_DAY),
            DraftDay(date=D2, time_slot=TimeSlot.FULL_DAY),
        ),
        session=ADMIN_SESSION,
    )
    assert updated.dates == (D1, D2)
    assert updated.time_slot is TimeSlot.FULL_DAY


def test_update_still_conflicts_with_other_bookings(service, fake_repository) -> None:
    fake_repository.bookings[10] = make_booking(10, dates=(D1,), time_slot=TimeSlot.MORNING)
    fake_repository.bookings[11] = make_booking(11, dates=(D2,), time_slot=TimeSlot.AFTERNOON)
    with pytest.raises(DraftConflictError):
        service.update(10, _draft(DraftDay(date=D2, time_slot=TimeSlot.FULL_DAY)), session=ADMIN_SESSION)


def test_update_requires_single_slot(service, fake_repository) -> None:
    fake_repository.bookings[10] = make_booking(10)
    with pytest.raises(BookingValidationError):
        service.update(
            10,
            _draft(
                DraftDay(date=D1, time_slot=TimeSlot.MORNING),
                DraftDay(date=D2, time_slot=TimeSlot.AFTERNOON),
            ),
            session=ADMIN_SESSION,
        )


def test_list_bookings_counts_cover_all_statuses(service, fake_repository) -> None:
    fake_repository.bookings = {
        1: make_booking(1, dates=(D2,), status=BookingStatus.PENDING),
        2: make_booking(2, dates=(D1,), status=BookingStatus.PENDING),
        3: make_booking(3, status=BookingStatus.REJECTED),
    }
    result = service.list_bookings(session=ADMIN_SESSION, status=BookingStatus.PENDING)
    assert [booking.booking_id for booking in result["bookings"]] == [2, 1]
    assert result["counts"]["all"] == 3
    assert result["counts"]["rejected"] == 1


def test_preview_applies_submission_checks(fake_repository, settings) -> None:
    service = BookingWorkflowService(
        repository=fake_repository,
        settings=replace(settings, booking_max_dates=2),
    )
    with pytest.raises(BookingValidationError):
        service.preview(
            _draft(*(DraftDay(date=day, time_slot=TimeSlot.MORNING) for day in (D1, D2, D3))),
            session=PUBLIC,
        )
    with pytest.raises(BookingValidationError):
        service.preview(
            _draft(
                DraftDay(date=D1, time_slot=TimeSlot.MORNING),
                DraftDay(date=D1, time_slot=TimeSlot.AFTERNOON),
            ),
            session=PUBLIC,
        )
    with pytest.raises(BookingValidationError, match="not open"):
        service.preview(_draft(DraftDay(date=D1, time_slot=TimeSlot.MORNING), room_id=3), session=PUBLIC)
    with pytest.raises(RoomNotFoundError):
        service.preview(_draft(DraftDay(date=D1, time_slot=TimeSlot.MORNING), room_id=99), session=PUBLIC)


@pytest.mark.parametrize("reason", ["", "   "])
def test_reject_needs_a_reason(service, fake_repository, reason) -> None:
    fake_repository.bookings[10] = make_booking(10, status=BookingStatus.PENDING)
    with pytest.raises(BookingValidationError):
        service.reject(10, admin_id=ADMIN.admin_id, reason=reason, session=ADMIN_SESSION)
    assert fake_repository.bookings[10].status is BookingStatus.PENDING
    assert fake_repository.history == []
