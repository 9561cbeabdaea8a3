"""Rental amount calculation."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from services.intervals import BookingWindow, rental_days

HALF_DAY = Decimal("0.5")
CENTS = Decimal("0.01")


def to_decimal(value, default=None) -> Decimal | None:
    if value is None or value == "":
        return default
    return Decimal(str(value))


def billable_days(window: BookingWindow) -> Decimal:
    """Days to charge for a window.

    Timed rentals are charged by the hour as a fraction of a day, never less
    than half a day. Untimed rentals are charged per inclusive calendar day.
    """
    if window.has_times:
        seconds = Decimal((window.effective_end - window.effective_start).total_seconds())
        hours = seconds / Decimal(3600)
        return max(hours / Decimal(24), HALF_DAY)
    return Decimal(rental_days(window.start_date, window.end_date))


def calculate_total(window: BookingWindow, daily_rate, custom_total_amount=None) -> Decimal:
    custom = to_decimal(custom_total_amount)
    if custom is not None and custom > 0:
        return custom.quantize(CENTS, rounding=ROUND_HALF_UP)
    rate = to_decimal(daily_rate, Decimal(0))
    return (billable_days(window) * rate).quantize(CENTS, rounding=ROUND_HALF_UP)
