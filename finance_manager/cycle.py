"""Budget-cycle windows and calendar-month helpers.

A budget cycle starts on the user's renewal day rather than on the 1st.
Renewal days past the end of a short month are clamped to that month's last
day, so a renewal day of 31 starts February's cycle on the 28th (29th in
leap years) instead of overflowing into March.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Tuple, Union

DateLike = Union[date, datetime]

END_OF_DAY = time(23, 59, 59, 999999)


@dataclass(frozen=True)
class CycleWindow:
    """Inclusive ``[start, end]`` bounds of one budget cycle."""

    start: datetime
    end: datetime

    def contains(self, value: DateLike) -> bool:
        return self.start <= _as_datetime(value) <= self.end

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    return datetime.combine(value, time.min)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """Return ``day`` of the given month, clamped to the month's length."""
    return date(year, month, min(day, days_in_month(year, month)))


def shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def cycle_window(today: DateLike, renewal_day: int) -> CycleWindow:
    """Resolve the budget cycle that contains ``today``.

    If today is on or after this month's (clamped) renewal day, the cycle
    started this month; otherwise it started on the previous month's renewal
    day.  The cycle ends at the last instant of the day before the next
    cycle starts.
    """
    if not 1 <= renewal_day <= 31:
        raise ValueError(f"Renewal day must be between 1 and 31, got {renewal_day}")
    current = _as_datetime(today).date()

    this_start = clamp_day(current.year, current.month, renewal_day)
    if current >= this_start:
        start = this_start
    else:
        year, month = shift_month(current.year, current.month, -1)
        start = clamp_day(year, month, renewal_day)

    next_year, next_month = shift_month(start.year, start.month, 1)
    next_start = clamp_day(next_year, next_month, renewal_day)
    end = next_start - timedelta(days=1)
    return CycleWindow(
        start=datetime.combine(start, time.min),
        end=datetime.combine(end, END_OF_DAY),
    )


# ---------------------------------------------------------------------------
# Calendar months
# ---------------------------------------------------------------------------


def month_key(value: DateLike) -> str:
    """``YYYY-MM`` key for the calendar month containing ``value``."""
    return f"{value.year:04d}-{value.month:02d}"


def parse_month_key(key: str) -> Tuple[int, int]:
    try:
        year_text, month_text = key.split("-", 1)
        year, month = int(year_text), int(month_text)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid month key '{key}', expected YYYY-MM") from None
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month key '{key}', expected YYYY-MM")
    return year, month


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """First and last instant of a calendar month."""
    first = datetime(year, month, 1)
    last = datetime.combine(date(year, month, days_in_month(year, month)), END_OF_DAY)
    return first, last


def end_of_month(year: int, month: int) -> datetime:
    return month_bounds(year, month)[1]


def previous_month(value: DateLike) -> Tuple[int, int]:
    """(year, month) of the calendar month immediately before ``value``'s."""
    return shift_month(value.year, value.month, -1)


def month_label(year: int, month: int, fmt: str = "%B %Y") -> str:
    return date(year, month, 1).strftime(fmt)
