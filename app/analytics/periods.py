"""Period windows and chart buckets."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum as PyEnum

MAX_MONTH_BUCKETS = 24


class Period(str, PyEnum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class Window:
    """Closed timestamp range [start, end]."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def shift_months(year: int, month: int, delta: int) -> tuple[int, int]:
    """(year, month) moved by delta months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def resolve_window(period: Period, now: datetime) -> Window:
    """
    Current window for a named period, ending at now.

    - week: the last 7 calendar days including today
    - month: from the 1st of the current month
    - year: from the 1st of the month 11 months back (trailing 12 months,
      not year-to-date)
    """
    if period is Period.WEEK:
        start = start_of_day(now - timedelta(days=6))
    elif period is Period.MONTH:
        start = start_of_day(now.replace(day=1))
    else:
        year, month = shift_months(now.year, now.month, -11)
        start = datetime(year, month, 1)
    return Window(start=start, end=now)


def previous_window(window: Window) -> Window:
    """Equal-length window ending 1ms before the current one starts."""
    prev_end = window.start - timedelta(milliseconds=1)
    return Window(start=prev_end - window.duration, end=prev_end)


def month_key(moment: datetime | date) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def day_label(day: date) -> str:
    return f"{day.day:02d}"


def chart_bucket_keys(period: Period, window: Window) -> list[date | str]:
    """
    Bucket keys covering the window, oldest first.

    week/month yield one date per calendar day. year yields "YYYY-MM" keys
    stepping a month at a time from the window start to the end month,
    never more than MAX_MONTH_BUCKETS of them.
    """
    if period is Period.YEAR:
        keys: list[date | str] = []
        year, month = window.start.year, window.start.month
        end_key = month_key(window.end)
        while len(keys) < MAX_MONTH_BUCKETS:
            key = f"{year:04d}-{month:02d}"
            keys.append(key)
            if key == end_key:
                break
            year, month = shift_months(year, month, 1)
        return keys

    days: list[date | str] = []
    day = window.start.date()
    last = window.end.date()
    while day <= last:
        days.append(day)
        day += timedelta(days=1)
    return days
