"""Best-effort mirroring of rentals into a Google Calendar.

The mirror raises ``DependencyFailure`` when Google rejects a call; the rental
service logs it and keeps the rental without a calendar event.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from services.errors import DependencyFailure
from services.intervals import format_time

CALENDAR_API = "https://www.googleapis.com/calendar/v3"
SCOPES = ["https://www.googleapis.com/auth/calendar"]
RENTAL_COLOR_ID = "9"


@dataclass
class CalendarEvent:
    title: str
    description: str
    start: dict
    end: dict

    def to_google(self) -> dict:
        return {
            "summary": self.title,
            "description": self.description,
            "start": self.start,
            "end": self.end,
            "colorId": RENTAL_COLOR_ID,
            "reminders": {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": 60}],
            },
        }


def _money(value) -> str:
    return f"{float(value):,.0f}"


def build_rental_event(rental, camera, customer, timezone: str) -> CalendarEvent:
    """Timed rentals become timed events; untimed ones all-day events."""
    lines = [
        f"Customer: {customer.name}",
        f"Phone: {customer.phone}" if customer.phone else "",
        f"Camera: {camera.brand} {camera.model}",
        f"Total: {_money(rental.total_amount)}" if rental.total_amount else "",
        f"Deposit: {_money(rental.deposit)}" if rental.deposit else "",
        f"\nNotes: {rental.notes}" if rental.notes else "",
    ]
    description = "\n".join(line for line in lines if line)

    if rental.start_time is not None and rental.end_time is not None:
        start = {
            "dateTime": f"{rental.start_date.isoformat()}T{format_time(rental.start_time)}:00",
            "timeZone": timezone,
        }
        end = {
            "dateTime": f"{rental.end_date.isoformat()}T{format_time(rental.end_time)}:00",
            "timeZone": timezone,
        }
    else:
        # all-day events use an exclusive end date
        start = {"date": rental.start_date.isoformat()}
        end = {"date": (rental.end_date + timedelta(days=1)).isoformat()}

    return CalendarEvent(
        title=f"{camera.name} - {customer.name}",
        description=description,
        start=start,
        end=end,
    )


class NullCalendarMirror:
    """Used when no calendar is configured."""

    enabled = False

    def create_event(self, event: CalendarEvent):
        return None

    def update_event(self, event_id: str, event: CalendarEvent):
        return None

    def delete_event(self, event_id: str) -> bool:
        return False


class GoogleCalendarMirror:
    enabled = True

    def __init__(self, calendar_id: str, session, timeout: int = 10) -> None:
        self.calendar_id = calendar_id
        self.session = session
        self.timeout = timeout

    @classmethod
    def from_service_account(cls, key_file: str, calendar_id: str, timeout: int = 10):
        creds = service_account.Credentials.from_service_account_file(key_file, scopes=SCOPES)
        return cls(calendar_id, AuthorizedSession(creds), timeout=timeout)

    def _events_url(self, event_id: str | None = None) -> str:
        url = f"{CALENDAR_API}/calendars/{quote(self.calendar_id, safe='')}/events"
        if event_id:
            url += f"/{quote(event_id, safe='')}"
        return url

    def _call(self, method: str, url: str, payload: dict | None = None):
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
        except (requests.RequestException, GoogleAuthError) as exc:
            raise DependencyFailure(f"Calendar request failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise DependencyFailure(
                f"Calendar returned {resp.status_code}", status=resp.status_code, body=resp.text[:400]
            )
        return resp

    def create_event(self, event: CalendarEvent) -> str | None:
        resp = self._call("POST", self._events_url(), event.to_google())
        return resp.json().get("id")

    def update_event(self, event_id: str, event: CalendarEvent) -> str | None:
        resp = self._call("PUT", self._events_url(event_id), event.to_google())
        return resp.json().get("id")

    def delete_event(self, event_id: str) -> bool:
        self._call("DELETE", self._events_url(event_id))
        return True


def build_calendar_mirror(config, logger):
    calendar_id = config.get("GOOGLE_CALENDAR_ID")
    key_file = config.get("GOOGLE_SERVICE_ACCOUNT_FILE")

    if not calendar_id:
        logger.info("Google Calendar: GOOGLE_CALENDAR_ID not set, calendar mirroring disabled")
        return NullCalendarMirror()
    if not key_file or not os.path.exists(key_file):
        logger.warning("Google Calendar: service account key %s not found, calendar mirroring disabled", key_file)
        return NullCalendarMirror()

    try:
        mirror = GoogleCalendarMirror.from_service_account(
            key_file, calendar_id, timeout=config.get("CALENDAR_TIMEOUT_SECONDS", 10)
        )
    except (ValueError, OSError, GoogleAuthError) as exc:
        logger.warning("Google Calendar: could not load credentials: %s", exc)
        return NullCalendarMirror()

    logger.info("Google Calendar mirroring enabled for %s", calendar_id)
    return mirror
