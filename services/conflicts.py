"""Conflict evaluation between a requested rental window and existing rentals.

Availability search and rental admission both go through ``evaluate`` so they
always agree on what "overlapping" means.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from services.intervals import BookingWindow


def _window_of(booking) -> BookingWindow:
    if isinstance(booking, BookingWindow):
        return booking
    return booking.window


@dataclass
class ConflictResult:
    candidate: BookingWindow
    conflicting: list = field(default_factory=list)

    @property
    def conflict(self) -> bool:
        return bool(self.conflicting)

    def windows(self) -> list[dict]:
        return [_window_of(b).to_dict() for b in self.conflicting]

    def first(self) -> dict | None:
        windows = self.windows()
        return windows[0] if windows else None


def find_conflicts(candidate: BookingWindow, existing: Iterable) -> list:
    """Return the existing bookings whose effective interval meets the candidate's.

    ``existing`` may hold rentals (anything with a ``window``) or bare windows;
    the caller is responsible for passing only active bookings of one camera.
    """
    return [b for b in existing if candidate.overlaps(_window_of(b))]


def evaluate(candidate: BookingWindow, existing: Iterable) -> ConflictResult:
    return ConflictResult(candidate=candidate, conflicting=find_conflicts(candidate, existing))


def is_available(resource_status: str, candidate: BookingWindow, existing: Iterable) -> bool:
    """A camera is offered only if it is ``available`` and nothing it has overlaps."""
    if resource_status != "available":
        return False
    return not evaluate(candidate, existing).conflict
