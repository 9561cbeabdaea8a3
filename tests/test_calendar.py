import logging
from datetime import date, time
from decimal import Decimal
from types import SimpleNamespace

import pytest
import requests

from services.calendar import (
    GoogleCalendarMirror,
    NullCalendarMirror,
    build_calendar_mirror,
    build_rental_event,
)
from services.errors import DependencyFailure

CAMERA = SimpleNamespace(name="Sony A7 III", brand="Sony", model="ILCE-7M3")
CUSTOMER = SimpleNamespace(name="Nguyen Van A", phone="0901234567")


def _rental(**overrides):
    fields = dict(
        start_date=date(2025, 12, 20),
        end_date=date(2025, 12, 21),
        start_time=None,
        end_time=None,
        total_amount=Decimal("600000"),
        deposit=Decimal("0"),
        notes=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class FakeResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body or {}
        self.text = str(self._body)

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json))
        if self.exc:
            raise self.exc
        return self.response


def test_untimed_rental_is_an_all_day_event():
    event = build_rental_event(_rental(), CAMERA, CUSTOMER, "Asia/Ho_Chi_Minh")
    assert event.title == "Sony A7 III - Nguyen Van A"
    assert event.start == {"date": "2025-12-20"}
    # exclusive end
    assert event.end == {"date": "2025-12-22"}
    assert "Total: 600,000" in event.description
    assert "Deposit" not in event.description


def test_timed_rental_is_a_timed_event():
    rental = _rental(start_time=time(6, 30), end_time=time(11, 30), end_date=date(2025, 12, 20), notes="tripod")
    event = build_rental_event(rental, CAMERA, CUSTOMER, "Asia/Ho_Chi_Minh")
    assert event.start == {"dateTime": "2025-12-20T06:30:00", "timeZone": "Asia/Ho_Chi_Minh"}
    assert event.end == {"dateTime": "2025-12-20T11:30:00", "timeZone": "Asia/Ho_Chi_Minh"}
    assert event.description.endswith("Notes: tripod")

    body = event.to_google()
    assert body["summary"] == event.title
    assert body["reminders"]["overrides"] == [{"method": "popup", "minutes": 60}]


def test_google_mirror_creates_event():
    session = FakeSession(FakeResponse(200, {"id": "abc123"}))
    mirror = GoogleCalendarMirror("shop@group.calendar.google.com", session)

    event = build_rental_event(_rental(), CAMERA, CUSTOMER, "UTC")
    assert mirror.create_event(event) == "abc123"

    method, url, payload = session.calls[0]
    assert method == "POST"
    assert url.endswith("/calendars/shop%40group.calendar.google.com/events")
    assert payload["summary"] == "Sony A7 III - Nguyen Van A"


def test_google_mirror_delete_targets_event():
    session = FakeSession(FakeResponse(204))
    mirror = GoogleCalendarMirror("primary", session)
    assert mirror.delete_event("abc123") is True
    assert session.calls[0][:2] == ("DELETE", "https://www.googleapis.com/calendar/v3/calendars/primary/events/abc123")


def test_google_error_becomes_dependency_failure():
    mirror = GoogleCalendarMirror("primary", FakeSession(FakeResponse(500, {"error": "backend"})))
    with pytest.raises(DependencyFailure) as info:
        mirror.create_event(build_rental_event(_rental(), CAMERA, CUSTOMER, "UTC"))
    assert info.value.status_code == 502
    assert info.value.payload["status"] == 500


def test_network_error_becomes_dependency_failure():
    mirror = GoogleCalendarMirror("primary", FakeSession(exc=requests.ConnectionError("down")))
    with pytest.raises(DependencyFailure):
        mirror.delete_event("abc123")


def test_mirror_disabled_without_configuration(tmp_path):
    logger = logging.getLogger("test")
    assert isinstance(build_calendar_mirror({}, logger), NullCalendarMirror)

    config = {"GOOGLE_CALENDAR_ID": "primary", "GOOGLE_SERVICE_ACCOUNT_FILE": str(tmp_path / "missing.json")}
    assert isinstance(build_calendar_mirror(config, logger), NullCalendarMirror)


def test_mirror_disabled_with_unreadable_key(tmp_path):
    key = tmp_path / "key.json"
    key.write_text("{}")
    config = {"GOOGLE_CALENDAR_ID": "primary", "GOOGLE_SERVICE_ACCOUNT_FILE": str(key)}
    assert isinstance(build_calendar_mirror(config, logging.getLogger("test")), NullCalendarMirror)


def test_null_mirror_is_inert():
    mirror = NullCalendarMirror()
    assert mirror.create_event(None) is None
    assert mirror.delete_event("x") is False
