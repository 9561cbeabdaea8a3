"""Shared fixtures: app on in-memory SQLite, a fake calendar, and data helpers."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from app import create_app
from models import db
from models.camera import Camera
from models.customer import Customer
from models.rental import Rental
from services.errors import DependencyFailure
from utils.seed import seed_admin_user

ADMIN_PASSWORD = "admin-pass-123"


class FakeCalendar:
    """Records calls instead of talking to Google; can be told to fail."""

    enabled = True

    def __init__(self) -> None:
        self.fail = False
        self.created = []
        self.updated = []
        self.deleted = []

    def create_event(self, event):
        if self.fail:
            raise DependencyFailure("calendar unavailable")
        self.created.append(event)
        return f"evt-{len(self.created)}"

    def update_event(self, event_id, event):
        if self.fail:
            raise DependencyFailure("calendar unavailable")
        self.updated.append((event_id, event))
        return event_id

    def delete_event(self, event_id):
        if self.fail:
            raise DependencyFailure("calendar unavailable")
        self.deleted.append(event_id)
        return True


@pytest.fixture()
def calendar():
    return FakeCalendar()


@pytest.fixture()
def app(calendar):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "BCRYPT_ROUNDS": 4,
            "DEFAULT_ADMIN_USERNAME": "admin",
            "DEFAULT_ADMIN_PASSWORD": ADMIN_PASSWORD,
            "TIMEZONE": "UTC",
        },
        calendar=calendar,
    )
    with app.app_context():
        db.create_all()
        seed_admin_user()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth_headers(client):
    resp = client.post("/auth/login", json={"username": "admin", "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture()
def make_camera(app):
    def _make(name="Sony A7 III", status="available", daily_rate="300000", **overrides):
        camera = Camera(
            name=name,
            brand=overrides.pop("brand", "Sony"),
            model=overrides.pop("model", "ILCE-7M3"),
            category=overrides.pop("category", "mirrorless"),
            daily_rate=Decimal(daily_rate),
            status=status,
            **overrides,
        )
        db.session.add(camera)
        db.session.commit()
        return camera

    return _make


@pytest.fixture()
def make_customer(app):
    def _make(name="Nguyen Van A", phone="0901234567", **overrides):
        customer = Customer(name=name, phone=phone, **overrides)
        db.session.add(customer)
        db.session.commit()
        return customer

    return _make


@pytest.fixture()
def make_rental(app):
    """Insert a rental directly, bypassing admission."""

    def _make(camera, customer, start, end=None, start_time=None, end_time=None, status="active"):
        rental = Rental(
            camera_id=camera.id,
            customer_id=customer.id,
            start_date=date.fromisoformat(start),
            end_date=date.fromisoformat(end or start),
            start_time=time.fromisoformat(start_time) if start_time else None,
            end_time=time.fromisoformat(end_time) if end_time else None,
            daily_rate=camera.daily_rate,
            total_amount=Decimal("0"),
            deposit=Decimal("0"),
            status=status,
        )
        db.session.add(rental)
        db.session.commit()
        return rental

    return _make
