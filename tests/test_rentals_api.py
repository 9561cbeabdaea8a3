"""Tests for rental admission, edits and lifecycle endpoints."""

from __future__ import annotations

import pytest

from models import db
from models.audit_log import AuditLog
from models.camera import Camera
from models.rental import Rental


@pytest.fixture()
def camera(make_camera):
    return make_camera()


@pytest.fixture()
def customer(make_customer):
    return make_customer()


def _payload(camera, customer, **overrides):
    body = {
        "camera_id": camera.id,
        "customer_id": customer.id,
        "start_date": "2025-12-20",
        "end_date": "2025-12-20",
        "start_time": "06:30",
        "end_time": "11:30",
        "deposit": "1000000",
    }
    body.update(overrides)
    return body


def test_requires_bearer_token(client, camera, customer):
    resp = client.post("/rentals", json=_payload(camera, customer))
    assert resp.status_code == 401


def test_create_rental(client, auth_headers, camera, customer, calendar):
    resp = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["status"] == "active"
    assert body["start_time"] == "06:30"
    assert body["end_time"] == "11:30"
    assert body["rental_type"] == "hourly"
    # 5 hours is under half a day
    assert body["total_amount"] == 150000.0
    assert body["camera_name"] == "Sony A7 III"
    assert body["calendar_event_id"] == "evt-1"
    assert calendar.created[0].title == "Sony A7 III - Nguyen Van A"

    assert AuditLog.query.filter_by(action="RENTAL_CREATE").count() == 1


def test_untimed_rental_is_priced_per_day(client, auth_headers, camera, customer):
    resp = client.post(
        "/rentals",
        json=_payload(camera, customer, start_time="", end_time="", end_date="2025-12-22"),
        headers=auth_headers,
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["start_time"] is None
    assert body["total_amount"] == 900000.0
    assert body["rental_type"] == "daily"


def test_conflicting_rental_is_rejected(client, auth_headers, camera, customer):
    first = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)
    assert first.status_code == 201

    resp = client.post(
        "/rentals",
        json=_payload(camera, customer, start_time="11:30", end_time="12:00"),
        headers=auth_headers,
    )

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "Sony A7 III is already rented during this period"
    assert body["conflictingRental"] == {
        "start_date": "2025-12-20",
        "end_date": "2025-12-20",
        "start_time": "06:30",
        "end_time": "11:30",
    }
    assert Rental.query.count() == 1


def test_back_to_back_with_one_minute_gap_is_allowed(client, auth_headers, camera, customer):
    client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)
    resp = client.post(
        "/rentals",
        json=_payload(camera, customer, start_time="11:31", end_time="12:00"),
        headers=auth_headers,
    )
    assert resp.status_code == 201


def test_other_camera_is_not_affected(client, auth_headers, camera, customer, make_camera):
    other = make_camera(name="Canon R6", brand="Canon", model="R6")
    client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)
    resp = client.post("/rentals", json=_payload(other, customer), headers=auth_headers)
    assert resp.status_code == 201


def test_cancelled_rental_does_not_block(client, auth_headers, camera, customer, make_rental):
    make_rental(camera, customer, "2025-12-20", status="cancelled")
    make_rental(camera, customer, "2025-12-20", status="completed")
    resp = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)
    assert resp.status_code == 201


def test_overdue_rental_still_blocks(client, auth_headers, camera, customer, make_rental):
    make_rental(camera, customer, "2025-12-19", "2025-12-20", status="overdue")
    resp = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)
    assert resp.status_code == 400


def test_unknown_camera_is_404(client, auth_headers, customer):
    resp = client.post(
        "/rentals",
        json={"camera_id": 999, "customer_id": customer.id, "start_date": "2025-12-20"},
        headers=auth_headers,
    )
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Camera not found"


def test_unknown_customer_is_404(client, auth_headers, camera):
    resp = client.post(
        "/rentals",
        json={"camera_id": camera.id, "customer_id": 999, "start_date": "2025-12-20"},
        headers=auth_headers,
    )
    assert resp.status_code == 404


def test_missing_start_date_is_validation_error(client, auth_headers, camera, customer):
    body = _payload(camera, customer)
    del body["start_date"]
    resp = client.post("/rentals", json=body, headers=auth_headers)

    assert resp.status_code == 400
    data = resp.get_json()
    assert "conflictingRental" not in data
    assert any(d["field"] == "start_date" for d in data["details"])


def test_end_before_start_is_validation_error(client, auth_headers, camera, customer):
    resp = client.post(
        "/rentals",
        json=_payload(camera, customer, start_date="2025-12-21", end_date="2025-12-20"),
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert "conflictingRental" not in resp.get_json()


def test_calendar_failure_does_not_block_admission(client, auth_headers, camera, customer, calendar):
    calendar.fail = True
    resp = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)

    assert resp.status_code == 201
    assert resp.get_json()["calendar_event_id"] is None
    assert Rental.query.count() == 1


def test_edit_reruns_conflict_check(client, auth_headers, camera, customer):
    client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)
    second = client.post(
        "/rentals",
        json=_payload(camera, customer, start_time="18:00", end_time="22:00"),
        headers=auth_headers,
    ).get_json()

    resp = client.put(
        f"/rentals/{second['id']}", json={"start_time": "11:00"}, headers=auth_headers
    )
    assert resp.status_code == 400
    assert resp.get_json()["conflictingRental"]["end_time"] == "11:30"

    # unchanged in the database
    assert db.session.get(Rental, second["id"]).start_time.strftime("%H:%M") == "18:00"


def test_edit_does_not_conflict_with_itself(client, auth_headers, camera, customer, calendar):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()

    resp = client.put(
        f"/rentals/{created['id']}", json={"end_time": "12:30", "notes": "extra battery"}, headers=auth_headers
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["end_time"] == "12:30"
    assert body["notes"] == "extra battery"
    assert calendar.updated and calendar.updated[0][0] == "evt-1"


def test_edit_can_clear_times(client, auth_headers, camera, customer):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()

    resp = client.put(
        f"/rentals/{created['id']}", json={"start_time": None, "end_time": None}, headers=auth_headers
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["start_time"] is None
    assert body["total_amount"] == 300000.0


def test_custom_total_amount(client, auth_headers, camera, customer):
    resp = client.post(
        "/rentals", json=_payload(camera, customer, custom_total_amount="123456"), headers=auth_headers
    )
    assert resp.get_json()["total_amount"] == 123456.0


def test_return_completes_rental_and_frees_camera(client, auth_headers, camera, customer):
    camera.status = "rented"
    db.session.commit()
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()

    resp = client.post(
        f"/rentals/{created['id']}/return", json={"actual_return_date": "2025-12-20"}, headers=auth_headers
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "completed"
    assert body["actual_return_date"] == "2025-12-20"
    assert db.session.get(Camera, camera.id).status == "available"


def test_return_keeps_maintenance_status(client, auth_headers, camera, customer):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()
    camera.status = "maintenance"
    db.session.commit()

    client.post(f"/rentals/{created['id']}/return", headers=auth_headers)
    assert db.session.get(Camera, camera.id).status == "maintenance"


def test_returning_twice_is_rejected(client, auth_headers, camera, customer):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()
    client.post(f"/rentals/{created['id']}/return", headers=auth_headers)
    resp = client.post(f"/rentals/{created['id']}/return", headers=auth_headers)
    assert resp.status_code == 400


def test_cancel_releases_calendar_event(client, auth_headers, camera, customer, calendar):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()

    resp = client.post(f"/rentals/{created['id']}/cancel", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "cancelled"
    assert body["calendar_event_id"] is None
    assert calendar.deleted == ["evt-1"]

    # the slot is free again
    again = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)
    assert again.status_code == 201


def test_cancel_via_update_status(client, auth_headers, camera, customer, calendar):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()

    resp = client.put(f"/rentals/{created['id']}", json={"status": "cancelled"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "cancelled"
    assert calendar.deleted == ["evt-1"]


def test_reactivating_into_a_taken_slot_is_rejected(client, auth_headers, camera, customer):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()
    client.post(f"/rentals/{created['id']}/cancel", headers=auth_headers)
    client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)

    resp = client.put(f"/rentals/{created['id']}", json={"status": "active"}, headers=auth_headers)
    assert resp.status_code == 400


def test_cancel_with_calendar_down_keeps_event_id(client, auth_headers, camera, customer, calendar):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()
    calendar.fail = True

    resp = client.post(f"/rentals/{created['id']}/cancel", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "cancelled"


def test_delete_rental(client, auth_headers, camera, customer, calendar):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()

    resp = client.delete(f"/rentals/{created['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert db.session.get(Rental, created["id"]) is None
    assert calendar.deleted == ["evt-1"]


def test_unknown_rental_is_404(client, auth_headers):
    assert client.get("/rentals/42", headers=auth_headers).status_code == 404
    assert client.put("/rentals/42", json={}, headers=auth_headers).status_code == 404
    assert client.post("/rentals/42/cancel", headers=auth_headers).status_code == 404


def test_list_rentals_filters(client, auth_headers, camera, customer, make_camera, make_rental):
    other = make_camera(name="Fuji X-T4", brand="Fujifilm", model="X-T4")
    make_rental(camera, customer, "2025-12-20")
    make_rental(other, customer, "2025-12-21", status="completed")

    all_rows = client.get("/rentals", headers=auth_headers).get_json()
    assert len(all_rows) == 2
    assert all_rows[0]["start_date"] == "2025-12-21"

    active = client.get("/rentals?status=active", headers=auth_headers).get_json()
    assert [r["camera_id"] for r in active] == [camera.id]

    by_camera = client.get(f"/rentals?camera_id={other.id}", headers=auth_headers).get_json()
    assert [r["camera_name"] for r in by_camera] == ["Fuji X-T4"]


@pytest.mark.parametrize(
    "times",
    [
        {"start_time": "12:00Z", "end_time": "13:00Z"},
        {"start_time": "12:00+07:00"},
    ],
)
def test_times_with_zone_offset_are_rejected(client, auth_headers, camera, customer, times):
    client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)

    body = _payload(camera, customer, start_time=None, end_time=None)
    body.update(times)
    resp = client.post("/rentals", json=body, headers=auth_headers)

    assert resp.status_code == 400
    assert "conflictingRental" not in resp.get_json()
    assert resp.get_json()["details"][0]["field"] == "start_time"
    assert Rental.query.count() == 1


def test_seconds_are_dropped_from_times(client, auth_headers, camera, customer):
    resp = client.post(
        "/rentals", json=_payload(camera, customer, start_time="06:30:59", end_time="11:30:15"), headers=auth_headers
    )
    assert resp.status_code == 201
    assert (resp.get_json()["start_time"], resp.get_json()["end_time"]) == ("06:30", "11:30")


def test_reactivating_rental_of_deleted_camera_is_404(client, auth_headers, camera, customer):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()
    client.post(f"/rentals/{created['id']}/cancel", headers=auth_headers)
    assert client.delete(f"/cameras/{camera.id}", headers=auth_headers).status_code == 200

    resp = client.put(f"/rentals/{created['id']}", json={"status": "active"}, headers=auth_headers)
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Camera not found"
    assert db.session.get(Rental, created["id"]).status == "cancelled"


def test_editing_rental_of_deleted_camera_skips_calendar(client, auth_headers, camera, customer, calendar):
    created = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers).get_json()
    client.post(f"/rentals/{created['id']}/return", headers=auth_headers)
    client.delete(f"/cameras/{camera.id}", headers=auth_headers)

    resp = client.put(f"/rentals/{created['id']}", json={"end_time": "12:00"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["camera_name"] is None
    assert calendar.updated == []


def test_conflict_found_on_recheck_rolls_back(app, client, auth_headers, camera, customer, calendar,
                                             make_rental, monkeypatch):
    # a rental committed by another request after the first check
    make_rental(camera, customer, "2025-12-20")
    bookings = app.extensions["rental_service"].bookings
    original = bookings.list_active_bookings
    calls = []

    def racing(resource_id, window=None, exclude_id=None):
        calls.append(exclude_id)
        if len(calls) == 1:
            return []
        return original(resource_id, window=window, exclude_id=exclude_id)

    monkeypatch.setattr(bookings, "list_active_bookings", racing)

    resp = client.post("/rentals", json=_payload(camera, customer), headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json()["conflictingRental"] == {
        "start_date": "2025-12-20",
        "end_date": "2025-12-20",
        "start_time": None,
        "end_time": None,
    }
    # second check ran after the insert, excluding the new row
    assert len(calls) == 2 and calls[0] is None and calls[1] is not None
    assert Rental.query.count() == 1
    assert calendar.created == []
