"""Day-granularity date normalization used at the API boundary."""

from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def to_day(value: date | datetime | str, timezone_name: str = "UTC") -> date:
    """Normalize a date-ish value into a canonical ``datetime.date``.

    Plain ``YYYY-MM-DD`` strings map directly to that day. Timestamps that
    carry a time-of-day and an offset are first converted into
    ``timezone_name`` so a booking stored as local midnight in UTC does not
    shift to the previous day. Naive timestamps keep their calendar day.

    Raises ``ValueError`` for unparsable input; callers at the boundary are
    expected to handle it before values reach the availability core.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return value
    else:
        text = str(value).strip()
        if not text:
            raise ValueError("empty date value")
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)

    if moment.tzinfo is not None:
        moment = moment.astimezone(_zone(timezone_name))
    return moment.date()
