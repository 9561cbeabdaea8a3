"""SQLAlchemy-backed repositories used by the rental services.

They take the session explicitly so the services can be built once in the app
factory and handed a different session (or fake repositories) in tests.
"""

from __future__ import annotations

from collections import defaultdict

from models.camera import Camera
from models.customer import Customer
from models.rental import ACTIVE_STATUSES, Rental
from services.intervals import BookingWindow


class BookingRepository:
    def __init__(self, session) -> None:
        self.session = session

    def get(self, rental_id: int) -> Rental | None:
        return self.session.get(Rental, rental_id)

    def list_active_bookings(self, resource_id: int, window: BookingWindow | None = None,
                             exclude_id: int | None = None) -> list[Rental]:
        """Active and overdue rentals of one camera.

        ``window`` narrows the query to rentals whose dates touch the window's
        dates; it is only a prefilter, the time-level test is left to the
        conflict evaluator.
        """
        q = self.session.query(Rental).filter(
            Rental.camera_id == resource_id,
            Rental.status.in_(ACTIVE_STATUSES),
        )
        if window is not None:
            q = q.filter(Rental.start_date <= window.end_date, Rental.end_date >= window.start_date)
        if exclude_id is not None:
            q = q.filter(Rental.id != exclude_id)
        return q.order_by(Rental.start_date.asc(), Rental.start_time.asc()).all()

    def active_bookings_by_resource(self, resource_ids, window: BookingWindow) -> dict[int, list[Rental]]:
        """Same prefilter as ``list_active_bookings`` for many cameras in one query."""
        grouped: dict[int, list[Rental]] = defaultdict(list)
        resource_ids = list(resource_ids)
        if not resource_ids:
            return grouped
        rows = (
            self.session.query(Rental)
            .filter(
                Rental.camera_id.in_(resource_ids),
                Rental.status.in_(ACTIVE_STATUSES),
                Rental.start_date <= window.end_date,
                Rental.end_date >= window.start_date,
            )
            .all()
        )
        for r in rows:
            grouped[r.camera_id].append(r)
        return grouped

    def list_bookings(self, status=None, camera_id=None, customer_id=None) -> list[Rental]:
        q = self.session.query(Rental)
        if status:
            q = q.filter(Rental.status == status)
        if camera_id:
            q = q.filter(Rental.camera_id == camera_id)
        if customer_id:
            q = q.filter(Rental.customer_id == customer_id)
        return q.order_by(Rental.start_date.desc(), Rental.created_at.desc()).all()

    def list_overdue(self, now) -> list[Rental]:
        """Active rentals whose effective end lies before ``now`` (naive local time)."""
        candidates = (
            self.session.query(Rental)
            .filter(Rental.status.in_(ACTIVE_STATUSES), Rental.end_date <= now.date())
            .all()
        )
        return [r for r in candidates if r.window.effective_end < now]

    def insert_booking(self, rental: Rental) -> int:
        self.session.add(rental)
        self.session.flush()
        return rental.id

    def update_booking_status(self, rental_id: int, status: str) -> Rental | None:
        rental = self.get(rental_id)
        if rental is None:
            return None
        rental.status = status
        self.session.flush()
        return rental

    def delete_booking(self, rental: Rental) -> None:
        self.session.delete(rental)
        self.session.flush()


class ResourceRepository:
    def __init__(self, session) -> None:
        self.session = session

    def get_resource(self, resource_id: int, for_update: bool = False) -> Camera | None:
        # FOR UPDATE serializes concurrent admissions on the same camera where the
        # database supports it (SQLite ignores it and relies on re-validation)
        return self.session.get(Camera, resource_id, with_for_update=for_update or None)

    def list_resources(self, status=None, category=None, search=None) -> list[Camera]:
        q = self.session.query(Camera)
        if status:
            q = q.filter(Camera.status == status)
        if category:
            q = q.filter(Camera.category == category)
        if search:
            like = f"%{search}%"
            q = q.filter(
                Camera.name.ilike(like)
                | Camera.brand.ilike(like)
                | Camera.model.ilike(like)
                | Camera.serial_number.ilike(like)
            )
        return q.order_by(Camera.name.asc()).all()

    def list_available_resources(self, category=None, search=None) -> list[Camera]:
        return self.list_resources(status="available", category=category, search=search)

    def set_resource_status(self, resource_id: int, status: str) -> Camera | None:
        camera = self.get_resource(resource_id)
        if camera is None:
            return None
        camera.status = status
        self.session.flush()
        return camera


class CustomerRepository:
    def __init__(self, session) -> None:
        self.session = session

    def get(self, customer_id: int) -> Customer | None:
        return self.session.get(Customer, customer_id)
