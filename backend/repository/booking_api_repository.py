"""Repository layer responsible for all access to the external booking API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

import requests

from backend.domain.models import (
    AdminIdentity,
    Booking,
    BookingDraft,
    BookingStatus,
    BreakRequest,
    HistoryAction,
    HistoryEntry,
    HistoryPage,
    HistorySummary,
    Room,
    TimeSlot,
)
from backend.utils.config import Settings, get_settings
from backend.utils.dates import to_day
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class BookingApiError(Exception):
    """Raised when the booking API answers with an error or malformed payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BookingApiNotFoundError(BookingApiError):
    """Raised when the requested resource does not exist upstream."""


class BookingApiAuthError(BookingApiError):
    """Raised when upstream rejects the session credentials."""


class BookingApiUnavailableError(Exception):
    """Raised when the booking API cannot be reached at all."""


@dataclass(frozen=True)
class ApiSession:
    """Credentials for one caller, passed explicitly into every API call."""

    token: str | None = None
    admin: AdminIdentity | None = None

    @classmethod
    def anonymous(cls) -> "ApiSession":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return False


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise BookingApiError(f"Malformed timestamp from booking API: {value!r}") from exc


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class BookingApiRepository:
    """Encapsulates HTTP access so business logic stays transport-agnostic."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._base_url = self._settings.booking_api_base_url.rstrip("/")
        self._timeout = self._settings.booking_api_timeout_seconds
        self._http = http_session or requests.Session()

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        session: ApiSession,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        query = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            response = self._http.request(
                method,
                url,
                params=query or None,
                json=json_body,
                headers=session.headers(),
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.warning("Booking API unreachable: %s %s (%s)", method, url, exc)
            raise BookingApiUnavailableError(f"Booking API is unreachable: {exc}") from exc

        if response.status_code == 404:
            raise BookingApiNotFoundError(
                self._error_message(response, f"{path} not found"),
                status_code=404,
            )
        if response.status_code in (401, 403):
            raise BookingApiAuthError(
                self._error_message(response, "Booking API rejected the credentials"),
                status_code=response.status_code,
            )
        if not response.ok:
            logger.warning("Booking API error %s for %s %s", response.status_code, method, url)
            raise BookingApiError(
                self._error_message(response, f"Booking API error (HTTP {response.status_code})"),
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None

        try:
            payload = response.json()
        except ValueError as exc:
            raise BookingApiError(
                "Booking API returned a non-JSON body",
                status_code=response.status_code,
            ) from exc

        if isinstance(payload, dict) and "success" in payload:
            if not payload.get("success"):
                raise BookingApiError(
                    str(payload.get("error") or payload.get("message") or "Booking API request failed"),
                    status_code=response.status_code,
                )
            return payload.get("data")
        return payload

    @staticmethod
    def _error_message(response: requests.Response, fallback: str) -> str:
        try:
            payload = response.json()
        except ValueError:
            return fallback
        if isinstance(payload, dict):
            message = payload.get("error") or payload.get("message")
            if message:
                return str(message)
        return fallback

    # ------------------------------------------------------------------
    # Record mapping
    # ------------------------------------------------------------------

    def _to_room(self, row: Mapping[str, Any]) -> Room:
        try:
            return Room(
                room_id=int(row["id"]),
                name=str(row.get("roomName") or row.get("name") or ""),
                capacity=int(row.get("capacity") or 0),
                is_active=_parse_bool(row.get("isActive", True)),
                created_at=_parse_timestamp(row.get("createdAt")),
                description=_optional_text(row.get("description")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise BookingApiError(f"Malformed room record from booking API: {exc}") from exc

    def _to_booking(self, row: Mapping[str, Any]) -> Booking:
        timezone_name = self._settings.booking_timezone
        try:
            created_at = _parse_timestamp(row.get("createdAt"))
            raw_dates = row.get("dates") or []
            days = [to_day(value, timezone_name) for value in raw_dates]
            if not days and row.get("createdAt"):
                # Legacy records without a date list are pinned to their creation day.
                days = [to_day(str(row["createdAt"]), timezone_name)]

            nested_room = row.get("room") or {}
            room_name = _optional_text(row.get("roomName")) or _optional_text(
                nested_room.get("roomName") if isinstance(nested_room, Mapping) else None
            )
            return Booking(
                booking_id=int(row["id"]),
                room_id=int(row["roomId"]),
                dates=tuple(dict.fromkeys(days)),
                time_slot=TimeSlot(str(row["timeSlot"])),
                status=BookingStatus(str(row["status"])),
                booker_name=str(row.get("bookerName") or ""),
                department=str(row.get("department") or ""),
                phone_number=str(row.get("phoneNumber") or ""),
                meeting_title=str(row.get("meetingTitle") or ""),
                need_break=_parse_bool(row.get("needBreak")),
                break_request=BreakRequest(
                    organizer=_optional_text(row.get("breakOrganizer")),
                    details=_optional_text(row.get("breakDetails")),
                ),
                booking_code=str(row.get("bookingCode") or ""),
                room_name=room_name,
                created_at=created_at,
                updated_at=_parse_timestamp(row.get("updatedAt")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise BookingApiError(f"Malformed booking record from booking API: {exc}") from exc

    def _to_admin(self, row: Mapping[str, Any]) -> AdminIdentity:
        if "admin" in row and isinstance(row["admin"], Mapping):
            row = row["admin"]
        try:
            return AdminIdentity(
                admin_id=int(row["id"]),
                username=str(row.get("username") or ""),
                full_name=str(row.get("fullName") or row.get("username") or ""),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise BookingApiError(f"Malformed admin record from booking API: {exc}") from exc

    def _to_history_entry(self, row: Mapping[str, Any]) -> HistoryEntry:
        booking = row.get("booking") or {}
        admin = row.get("admin") or {}
        try:
            return HistoryEntry(
                entry_id=int(row["id"]),
                booking_id=int(row["bookingId"]),
                admin_id=int(row["adminId"]),
                action=HistoryAction(str(row["action"])),
                created_at=_parse_timestamp(row.get("createdAt")),
                reason=_optional_text(row.get("reason")),
                booking_code=_optional_text(booking.get("bookingCode")),
                booker_name=_optional_text(booking.get("bookerName")),
                room_name=_optional_text(booking.get("roomName")),
                admin_name=_optional_text(admin.get("fullName")),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise BookingApiError(f"Malformed history record from booking API: {exc}") from exc

    @staticmethod
    def _booking_payload(
        draft: BookingDraft,
        time_slot: TimeSlot,
        dates: Sequence[date],
    ) -> dict[str, Any]:
        return {
            "bookerName": draft.booker_name,
            "phoneNumber": draft.phone_number,
            "meetingTitle": draft.meeting_title,
            "roomId": draft.room_id,
            "timeSlot": time_slot.value,
            "needBreak": draft.need_break,
            "breakDetails": draft.break_request.details,
            "breakOrganizer": draft.break_request.organizer,
            "department": draft.department,
            "dates": [day.isoformat() for day in dates],
        }

    @staticmethod
    def _rows(data: Any) -> Iterable[Mapping[str, Any]]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise BookingApiError("Booking API returned an unexpected collection shape")
        return data

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def list_rooms(self, *, session: ApiSession) -> list[Room]:
        data = self._request("GET", "/rooms", session=session)
        return [self._to_room(row) for row in self._rows(data)]

    def get_room(self, room_id: int, *, session: ApiSession) -> Optional[Room]:
        try:
            data = self._request("GET", f"/rooms/{room_id}", session=session)
        except BookingApiNotFoundError:
            return None
        if data is None:
            return None
        return self._to_room(data)

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def list_bookings(
        self,
        *,
        session: ApiSession,
        status: Optional[BookingStatus] = None,
        room_id: Optional[int] = None,
    ) -> list[Booking]:
        data = self._request(
            "GET",
            "/bookings",
            session=session,
            params={
                "status": status.value if status is not None else None,
                "roomId": room_id,
            },
        )
        return [self._to_booking(row) for row in self._rows(data)]

    def get_booking(self, booking_id: int, *, session: ApiSession) -> Optional[Booking]:
        try:
            data = self._request("GET", f"/bookings/{booking_id}", session=session)
        except BookingApiNotFoundError:
            return None
        if data is None:
            return None
        return self._to_booking(data)

    def create_booking(
        self,
        draft: BookingDraft,
        *,
        time_slot: TimeSlot,
        dates: Sequence[date],
        session: ApiSession,
    ) -> Booking:
        data = self._request(
            "POST",
            "/bookings",
            session=session,
            json_body=self._booking_payload(draft, time_slot, dates),
        )
        booking = self._to_booking(data)
        logger.info(
            "Created booking %s for room %s on %s date(s)",
            booking.booking_code or booking.booking_id,
            booking.room_id,
            len(booking.dates),
        )
        return booking

    def update_booking(
        self,
        booking_id: int,
        draft: BookingDraft,
        *,
        time_slot: TimeSlot,
        dates: Sequence[date],
        session: ApiSession,
    ) -> Booking:
        data = self._request(
            "PUT",
            f"/bookings/{booking_id}",
            session=session,
            json_body=self._booking_payload(draft, time_slot, dates),
        )
        return self._to_booking(data)

    def delete_booking(self, booking_id: int, *, session: ApiSession) -> None:
        self._request("DELETE", f"/bookings/{booking_id}", session=session)

    def approve_booking(
        self,
        booking_id: int,
        *,
        admin_id: int,
        reason: Optional[str],
        session: ApiSession,
    ) -> Booking:
        data = self._request(
            "POST",
            f"/bookings/{booking_id}/approve",
            session=session,
            json_body={"adminId": admin_id, "reason": reason},
        )
        return self._to_booking(data)

    def reject_booking(
        self,
        booking_id: int,
        *,
        admin_id: int,
        reason: Optional[str],
        session: ApiSession,
    ) -> Booking:
        data = self._request(
            "POST",
            f"/bookings/{booking_id}/reject",
            session=session,
            json_body={"adminId": admin_id, "reason": reason},
        )
        return self._to_booking(data)

    def reset_booking(self, booking_id: int, *, session: ApiSession) -> Booking:
        data = self._request("POST", f"/bookings/{booking_id}/reset", session=session)
        return self._to_booking(data)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_booking_history(self, booking_id: int, *, session: ApiSession) -> list[HistoryEntry]:
        data = self._request("GET", f"/bookings/{booking_id}/history", session=session)
        return [self._to_history_entry(row) for row in self._rows(data)]

    def list_history(
        self,
        *,
        session: ApiSession,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        action: Optional[HistoryAction] = None,
        admin_id: Optional[int] = None,
    ) -> HistoryPage:
        data = self._request(
            "GET",
            "/history",
            session=session,
            params={
                "limit": limit,
                "offset": offset,
                "action": action.value if action is not None else None,
                "adminId": admin_id,
            },
        )
        data = data or {}
        entries = [self._to_history_entry(row) for row in self._rows(data.get("data"))]
        return HistoryPage(
            entries=entries,
            total=int(data.get("total", len(entries))),
            limit=int(data.get("limit", limit or len(entries))),
            offset=int(data.get("offset", offset or 0)),
        )

    def get_history_summary(self, *, session: ApiSession) -> HistorySummary:
        data = self._request("GET", "/history/summary", session=session) or {}
        try:
            return HistorySummary(
                action_counts={
                    str(item["action"]): int(item["count"])
                    for item in data.get("actionSummary") or []
                },
                top_admins=[
                    {
                        "admin_id": int(item["adminId"]),
                        "admin_name": str(item.get("adminName") or ""),
                        "total_actions": int(item["totalActions"]),
                    }
                    for item in data.get("topAdmins") or []
                ],
                recent_activity=[
                    {
                        "date": str(item["date"]),
                        "action": str(item["action"]),
                        "count": int(item["count"]),
                    }
                    for item in data.get("recentActivity") or []
                ],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise BookingApiError(f"Malformed history summary from booking API: {exc}") from exc

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> ApiSession:
        data = self._request(
            "POST",
            "/auth/login",
            session=ApiSession.anonymous(),
            json_body={"username": username, "password": password},
        )
        if not isinstance(data, Mapping) or not data.get("token"):
            raise BookingApiError("Booking API login response did not include a token")
        admin = self._to_admin(data.get("admin") or {})
        return ApiSession(token=str(data["token"]), admin=admin)

    def get_current_admin(self, *, session: ApiSession) -> AdminIdentity:
        data = self._request("GET", "/auth/me", session=session)
        if not isinstance(data, Mapping):
            raise BookingApiError("Booking API returned no admin profile")
        return self._to_admin(data)

    def ping(self) -> bool:
        """Return True when the booking API answers the rooms listing."""
        try:
            self._request("GET", "/rooms", session=ApiSession.anonymous())
        except (BookingApiError, BookingApiUnavailableError):
            return False
        return True
