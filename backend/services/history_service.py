"""Approval history listing for the admin reports screen."""

from __future__ import annotations

from typing import Optional

from backend.domain.models import HistoryAction, HistoryPage, HistorySummary
from backend.repository.booking_api_repository import ApiSession, BookingApiRepository
from backend.utils.config import Settings, get_settings


class HistoryValidationError(Exception):
    """Raised when history paging arguments are out of range."""


MAX_PAGE_SIZE = 200


class HistoryService:
    def __init__(
        self,
        repository: Optional[BookingApiRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or BookingApiRepository(self._settings)

    def list_history(
        self,
        *,
        session: ApiSession,
        limit: int = 50,
        offset: int = 0,
        action: Optional[HistoryAction] = None,
        admin_id: Optional[int] = None,
    ) -> HistoryPage:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise HistoryValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise HistoryValidationError("offset must be >= 0")
        return self._repository.list_history(
            session=session,
            limit=limit,
            offset=offset,
            action=action,
            admin_id=admin_id,
        )

    def summary(self, *, session: ApiSession) -> HistorySummary:
        return self._repository.get_history_summary(session=session)
