"""Streamlit dashboard for the meeting room booking portal."""

from __future__ import annotations

import datetime
import os
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

# ==========================================
# Configuration & Constants
# ==========================================
# Point this to the FastAPI portal (see main.py)
API_BASE_URL = os.getenv("DASHBOARD_API_BASE_URL", "http://127.0.0.1:8000").rstrip("/")

TIME_SLOT_LABELS = {
    "morning": "Morning (08:30-12:00)",
    "afternoon": "Afternoon (13:00-17:00)",
    "full_day": "Full day (08:30-17:00)",
}
STATUS_FILTERS = ["all", "pending", "approved", "rejected", "cancelled"]
DAY_STATUS_ICONS = {"available": "🟢", "partial": "🟡", "full": "🔴"}
WEEKDAY_HEADERS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

st.set_page_config(
    page_title="Meeting Room Booking",
    page_icon="🏢",
    layout="wide",
)


# ==========================================
# API Helper Functions
# ==========================================
def _auth_headers() -> Dict[str, str]:
    token = st.session_state.get("access_token")
    return {"Authorization": f"Bearer {token}"} if token else {}


def _error_detail(response: requests.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(detail, dict):
        return str(detail.get("message", detail))
    return str(detail)


def api_call(
    method: str,
    path: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    payload: Optional[Dict[str, Any]] = None,
    timeout: float = 10,
) -> Optional[requests.Response]:
    """Call the portal API; connection failures are shown and return None."""
    try:
        return requests.request(
            method,
            f"{API_BASE_URL}{path}",
            params=params,
            json=payload,
            headers=_auth_headers(),
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None


def fetch_json(path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
    response = api_call("GET", path, params=params)
    if response is None:
        return None
    if response.status_code == 401:
        st.session_state.pop("access_token", None)
        st.warning("Session expired. Login again from the sidebar.")
        return None
    if not response.ok:
        st.error(_error_detail(response))
        return None
    return response.json()


def fetch_rooms() -> List[Dict[str, Any]]:
    return fetch_json("/rooms") or []


# ==========================================
# UI Page Functions
# ==========================================
def _room_picker(rooms: List[Dict[str, Any]], key: str) -> Optional[Dict[str, Any]]:
    if not rooms:
        st.info("No rooms are open for booking.")
        return None
    labels = {f"{room['name']} ({room['capacity']} seats)": room for room in rooms}
    return labels[st.selectbox("Room", list(labels), key=key)]


def render_calendar(room_id: int, year: int, month: int) -> None:
    calendar_data = fetch_json(
        f"/rooms/{room_id}/calendar",
        params={"year": year, "month": month},
    )
    if not calendar_data:
        return

    header = st.columns(7)
    for column, name in zip(header, WEEKDAY_HEADERS):
        column.markdown(f"**{name}**")
    for week in calendar_data["weeks"]:
        columns = st.columns(7)
        for column, cell in zip(columns, week):
            if not cell["in_month"]:
                column.caption(cell["date"][-2:])
                continue
            icon = DAY_STATUS_ICONS.get(cell["status"], "")
            free = ", ".join(slot.replace("_", " ") for slot in cell["available_slots"]) or "none"
            column.markdown(f"{icon} **{int(cell['date'][-2:])}**")
            column.caption(f"free: {free}")


def render_booking_page() -> None:
    st.header("📅 Book a Meeting Room")
    st.markdown("Pick a room, check the month view, then request one or more dates.")

    room = _room_picker(fetch_rooms(), key="booking_room")
    if room is None:
        return

    today = datetime.date.today()
    col1, col2 = st.columns(2)
    with col1:
        year = st.number_input("Year", min_value=2000, max_value=2100, value=today.year)
    with col2:
        month = st.number_input("Month", min_value=1, max_value=12, value=today.month)
    render_calendar(room["room_id"], int(year), int(month))

    st.write("### Requested Dates")
    days = st.data_editor(
        pd.DataFrame(
            [{"date": today + datetime.timedelta(days=1), "time_slot": "morning"}]
        ),
        num_rows="dynamic",
        column_config={
            "date": st.column_config.DateColumn("Date", required=True),
            "time_slot": st.column_config.SelectboxColumn(
                "Time slot",
                options=list(TIME_SLOT_LABELS),
                required=True,
            ),
        },
        use_container_width=True,
        key="booking_days",
    )

    st.write("### Booker Details")
    col1, col2 = st.columns(2)
    with col1:
        booker_name = st.text_input("Name")
        department = st.text_input("Department")
    with col2:
        phone_number = st.text_input("Phone number")
        meeting_title = st.text_input("Meeting title")
    need_break = st.checkbox("Request a coffee break")
    break_organizer = st.text_input("Break organizer", disabled=not need_break)
    break_details = st.text_area("Break details", disabled=not need_break)

    payload = {
        "room_id": room["room_id"],
        "booker_name": booker_name,
        "department": department,
        "phone_number": phone_number,
        "meeting_title": meeting_title,
        "need_break": need_break,
        "break_organizer": break_organizer if need_break else None,
        "break_details": break_details if need_break else None,
        "days": [
            {"date": str(row["date"]), "time_slot": row["time_slot"]}
            for row in days.dropna().to_dict("records")
        ],
    }

    check_col, submit_col = st.columns(2)
    if check_col.button("Check Availability"):
        response = api_call("POST", "/bookings/validate", payload=payload)
        if response is not None and response.ok:
            result = response.json()
            if result["accepted"]:
                st.success("All selected dates are available.")
            else:
                for violation in result["violations"]:
                    st.warning(violation["reason"])
        elif response is not None:
            st.error(_error_detail(response))

    if submit_col.button("Submit Booking", type="primary"):
        with st.spinner("Submitting booking..."):
            response = api_call("POST", "/bookings", payload=payload)
        if response is None:
            return
        if response.status_code == 201:
            codes = [item["booking_code"] or str(item["id"]) for item in response.json()["bookings"]]
            st.success(f"Booking submitted for approval: {', '.join(codes)}")
        elif response.status_code == 409:
            for violation in response.json()["detail"]["violations"]:
                st.warning(violation["reason"])
        else:
            st.error(_error_detail(response))


def render_daily_overview_page() -> None:
    st.header("🗓️ Daily Overview")

    rooms = fetch_rooms()
    room_options = {"All rooms": None} | {room["name"]: room["room_id"] for room in rooms}

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        target_date = st.date_input("Date", datetime.date.today())
    with col2:
        status = st.selectbox("Status", STATUS_FILTERS)
    with col3:
        room_label = st.selectbox("Room", list(room_options))
    with col4:
        search = st.text_input("Search")

    overview = fetch_json(
        "/admin/daily_overview",
        params={
            "date": str(target_date),
            "status": None if status == "all" else status,
            "room_id": room_options[room_label],
            "search": search or None,
        },
    )
    if not overview:
        return

    stats = overview["stats"]
    metric_cols = st.columns(5)
    metric_cols[0].metric("Meetings", stats["total_meetings"])
    metric_cols[1].metric("Rooms in use", f"{stats['rooms_in_use']}/{stats['total_rooms']}")
    metric_cols[2].metric("Attendees (seats)", stats["total_attendees"])
    metric_cols[3].metric("Pending", stats["pending_approvals"])
    metric_cols[4].metric("Break requests", stats["break_requests"])

    meetings = overview["meetings"]
    st.caption(
        f"Showing {len(meetings)} of {overview['total_meetings_before_filter']} meetings"
    )
    if meetings:
        df = pd.DataFrame(meetings)
        df["time_slot"] = df["time_slot"].map(TIME_SLOT_LABELS)
        st.dataframe(
            df[["time_slot", "room_name", "meeting_title", "booker_name", "department", "status", "need_break"]],
            use_container_width=True,
        )
    else:
        st.info("No meetings on this date.")


def render_approvals_page() -> None:
    st.header("✅ Booking Approvals")

    status = st.selectbox("Status", STATUS_FILTERS, index=1)
    listing = fetch_json(
        "/admin/bookings",
        params={"status": None if status == "all" else status},
    )
    if not listing:
        return

    counts = listing["counts"]
    st.caption(" · ".join(f"{name}: {counts.get(name, 0)}" for name in STATUS_FILTERS))

    bookings = listing["bookings"]
    if not bookings:
        st.info("No bookings match this filter.")
        return

    df = pd.DataFrame(bookings)
    st.dataframe(
        df[["id", "booking_code", "room_name", "dates", "time_slot", "status", "booker_name", "meeting_title"]],
        use_container_width=True,
    )

    st.write("### Decide")
    col1, col2 = st.columns(2)
    with col1:
        booking_id = st.selectbox("Booking", [item["id"] for item in bookings])
    with col2:
        reason = st.text_input("Reason (required to reject)").strip()

    approve_col, reject_col = st.columns(2)
    for column, action in ((approve_col, "approve"), (reject_col, "reject")):
        disabled = action == "reject" and not reason
        if column.button(
            action.title(),
            type="primary" if action == "approve" else "secondary",
            disabled=disabled,
        ):
            response = api_call(
                "POST",
                f"/admin/bookings/{booking_id}/{action}",
                payload={"reason": reason or None},
            )
            if response is not None and response.ok:
                st.success(f"Booking {booking_id} is now {response.json()['status']}.")
            elif response is not None and response.status_code == 409:
                for violation in response.json()["detail"]["violations"]:
                    st.warning(violation["reason"])
            elif response is not None:
                st.error(_error_detail(response))


def render_history_page() -> None:
    st.header("📜 Approval History")

    summary = fetch_json("/admin/history/summary")
    if summary:
        action_counts = summary["action_counts"]
        metric_cols = st.columns(3)
        for column, action in zip(metric_cols, ("approved", "rejected", "cancelled")):
            column.metric(action.title(), action_counts.get(action, 0))

    page = fetch_json("/admin/history", params={"limit": 100, "offset": 0})
    if page and page["entries"]:
        st.caption(f"{page['total']} entries")
        st.dataframe(pd.DataFrame(page["entries"]), use_container_width=True)
    elif page is not None:
        st.info("No approval history yet.")


def render_login_sidebar() -> bool:
    if st.session_state.get("access_token"):
        st.sidebar.success(f"Signed in as {st.session_state.get('admin_name', 'admin')}")
        if st.sidebar.button("Logout"):
            api_call("POST", "/logout")
            st.session_state.pop("access_token", None)
            st.rerun()
        return True

    with st.sidebar.form("login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")
    if submitted:
        response = api_call("POST", "/login", payload={"username": username, "password": password})
        if response is not None and response.ok:
            body = response.json()
            st.session_state["access_token"] = body["access_token"]
            st.session_state["admin_name"] = (body.get("admin") or {}).get("full_name", username)
            st.rerun()
        elif response is not None:
            st.sidebar.error(_error_detail(response))
    return False


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Meeting Room Booking")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigation",
        ["Book a Room", "Daily Overview", "Approvals", "History"],
    )

    st.sidebar.markdown("---")
    signed_in = render_login_sidebar()
    st.sidebar.caption(f"Portal API: {API_BASE_URL}")

    if page == "Book a Room":
        render_booking_page()
    elif not signed_in:
        st.info("Admin pages require login (see sidebar).")
    elif page == "Daily Overview":
        render_daily_overview_page()
    elif page == "Approvals":
        render_approvals_page()
    elif page == "History":
        render_history_page()


if __name__ == "__main__":
    main()
