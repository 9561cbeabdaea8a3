"""Date/time normalization shared by conflict detection, pricing and overdue checks.

Every rental is reduced to a closed ``[start, end]`` datetime interval:

    effective_start = start_date at (start_time or 00:00)
    effective_end   = end_date   at (end_time   or 23:59)

so a rental without times occupies its whole calendar day(s). Dates are plain
calendar dates; nothing here converts between time zones.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

DAY_START = time(0, 0)
DAY_END = time(23, 59)


def parse_date(value) -> date:
    """Parse ``YYYY-MM-DD`` (or pass a date through). Raises ValueError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("date is required")
    # only the calendar part matters; "2025-12-20T00:00:00.000Z" from the browser is fine
    return date.fromisoformat(value.strip()[:10])


def parse_time(value) -> time | None:
    """Parse ``HH:MM`` or ``HH:MM:SS``; blank values mean "no time"."""
    if value is None:
        return None
    if isinstance(value, time):
        parsed = value
    elif isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        parsed = time.fromisoformat(value)
    else:
        raise ValueError("time must be a string like 18:30")
    # stored times are local wall-clock values
    if parsed.tzinfo is not None:
        raise ValueError("time must not carry a timezone")
    return parsed.replace(second=0, microsecond=0)


def format_time(value: time | None) -> str | None:
    return value.strftime("%H:%M") if value is not None else None


def overlaps(a: tuple[datetime, datetime], b: tuple[datetime, datetime]) -> bool:
    """Closed-interval overlap: touching endpoints count as a conflict."""
    a_start, a_end = a
    b_start, b_end = b
    return a_start <= b_end and b_start <= a_end


@dataclass(frozen=True)
class BookingWindow:
    """The period a rental asks for, before normalization."""

    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None

    @classmethod
    def parse(cls, start_date, end_date=None, start_time=None, end_time=None) -> BookingWindow:
        start = parse_date(start_date)
        end = parse_date(end_date) if end_date else start
        return cls(start, end, parse_time(start_time), parse_time(end_time))

    @property
    def has_times(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def effective_start(self) -> datetime:
        return datetime.combine(self.start_date, self.start_time or DAY_START)

    @property
    def effective_end(self) -> datetime:
        return datetime.combine(self.end_date, self.end_time or DAY_END)

    def interval(self) -> tuple[datetime, datetime]:
        return self.effective_start, self.effective_end

    def overlaps(self, other: BookingWindow) -> bool:
        return overlaps(self.interval(), other.interval())

    def is_well_formed(self) -> bool:
        return self.effective_end >= self.effective_start

    def to_dict(self) -> dict:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
        }


def rental_days(start_date, end_date) -> int:
    """Inclusive calendar days between two dates, e.g. 20th..22nd is 3."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    return (end - start).days + 1


def local_now(tz_name: str | None = None) -> datetime:
    """Naive wall-clock time in the business time zone.

    Rental dates and times are stored as local wall-clock values, so "now" has
    to be expressed the same way before comparing against them.
    """
    if not tz_name:
        return datetime.now()
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
