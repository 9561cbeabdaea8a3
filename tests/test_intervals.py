"""Tests for window normalization and day counting."""

from datetime import date, datetime, time, timezone

import pytest

from services.intervals import BookingWindow, overlaps, parse_time, rental_days


def test_untimed_window_covers_whole_days():
    window = BookingWindow.parse("2025-12-20", "2025-12-22")
    assert window.effective_start == datetime(2025, 12, 20, 0, 0)
    assert window.effective_end == datetime(2025, 12, 22, 23, 59)
    assert not window.has_times


def test_times_apply_to_start_and_end_dates():
    window = BookingWindow.parse("2025-12-20", "2025-12-21", "18:00", "09:30")
    assert window.effective_start == datetime(2025, 12, 20, 18, 0)
    assert window.effective_end == datetime(2025, 12, 21, 9, 30)


def test_missing_end_date_defaults_to_start_date():
    window = BookingWindow.parse("2025-12-20")
    assert window.end_date == date(2025, 12, 20)


def test_only_one_time_given_fills_the_other_with_day_bound():
    window = BookingWindow.parse("2025-12-20", "2025-12-20", start_time="14:00")
    assert window.effective_start == datetime(2025, 12, 20, 14, 0)
    assert window.effective_end == datetime(2025, 12, 20, 23, 59)


def test_parse_time_accepts_blank_and_seconds():
    assert parse_time("") is None
    assert parse_time(None) is None
    assert parse_time("11:30:45") == time(11, 30)


def test_parse_rejects_garbage_date():
    with pytest.raises(ValueError):
        BookingWindow.parse("20/12/2025")


def test_browser_timestamp_keeps_calendar_date():
    window = BookingWindow.parse("2025-12-20T17:00:00.000Z", "2025-12-20T17:00:00.000Z")
    assert window.start_date == date(2025, 12, 20)


def test_window_is_well_formed():
    assert BookingWindow.parse("2025-12-20", "2025-12-20", "10:00", "10:00").is_well_formed()
    assert not BookingWindow.parse("2025-12-20", "2025-12-20", "12:00", "10:00").is_well_formed()


@pytest.mark.parametrize(
    "start, end, expected",
    [
        ("2025-12-20", "2025-12-20", 1),
        ("2025-12-20", "2025-12-22", 3),
        ("2025-12-31", "2026-01-01", 2),
        # across the March DST change in zones that observe it
        ("2025-03-29", "2025-03-31", 3),
    ],
)
def test_rental_days_is_inclusive_and_date_only(start, end, expected):
    assert rental_days(start, end) == expected


def test_overlap_is_closed_at_both_ends():
    a = (datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))
    b = (datetime(2025, 1, 1, 10, 0), datetime(2025, 1, 1, 11, 0))
    c = (datetime(2025, 1, 1, 10, 1), datetime(2025, 1, 1, 11, 0))
    assert overlaps(a, b)
    assert not overlaps(a, c)


@pytest.mark.parametrize("value", ["12:00Z", "12:00+07:00", time(12, 0, tzinfo=timezone.utc)])
def test_parse_time_rejects_zone_offsets(value):
    with pytest.raises(ValueError):
        parse_time(value)
