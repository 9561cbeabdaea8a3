"""Rental admission, edits and lifecycle transitions.

Admission and availability search both go through ``services.conflicts`` so a
camera offered by the search is exactly a camera admission would accept.
"""

from __future__ import annotations

from services.calendar import build_rental_event
from services.conflicts import evaluate, is_available
from services.errors import ConflictError, DependencyFailure, NotFoundError, RentalError, ValidationError
from services.intervals import BookingWindow, local_now
from services.pricing import calculate_total
from models.rental import ACTIVE_STATUSES, Rental

WINDOW_FIELDS = ("start_date", "end_date", "start_time", "end_time")


class RentalService:
    def __init__(self, session, bookings, resources, customers, calendar, logger,
                 timezone=None, calendar_timezone=None) -> None:
        self.session = session
        self.bookings = bookings
        self.resources = resources
        self.customers = customers
        self.calendar = calendar
        self.logger = logger
        self.timezone = timezone
        self.calendar_timezone = calendar_timezone or timezone or "UTC"

    def now(self):
        return local_now(self.timezone)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def search_available(self, window: BookingWindow, category=None, search=None):
        cameras = self.resources.list_available_resources(category=category, search=search)
        busy = self.bookings.active_bookings_by_resource([c.id for c in cameras], window)
        return [c for c in cameras if is_available(c.status, window, busy.get(c.id, []))]

    def check_conflicts(self, camera, window: BookingWindow, exclude_id=None) -> None:
        existing = self.bookings.list_active_bookings(camera.id, window=window, exclude_id=exclude_id)
        result = evaluate(window, existing)
        if result.conflict:
            raise ConflictError(f"{camera.name} is already rented during this period", result.first())

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def admit(self, data) -> Rental:
        window = data.window()
        try:
            camera = self.resources.get_resource(data.camera_id, for_update=True)
            if camera is None:
                raise NotFoundError("Camera not found")
            customer = self.customers.get(data.customer_id)
            if customer is None:
                raise NotFoundError("Customer not found")

            self.check_conflicts(camera, window)

            daily_rate = data.daily_rate if data.daily_rate is not None else camera.daily_rate
            hourly_rate = data.hourly_rate if data.hourly_rate is not None else camera.hourly_rate
            rental = Rental(
                camera_id=camera.id,
                customer_id=customer.id,
                start_date=window.start_date,
                end_date=window.end_date,
                start_time=window.start_time,
                end_time=window.end_time,
                daily_rate=daily_rate,
                hourly_rate=hourly_rate,
                total_amount=calculate_total(window, daily_rate, data.custom_total_amount),
                deposit=data.deposit,
                notes=data.notes,
                status="active",
                rental_type="hourly" if window.has_times else "daily",
            )
            self.bookings.insert_booking(rental)

            # a concurrent admission may have committed since the first check
            self.check_conflicts(camera, window, exclude_id=rental.id)
            self.session.commit()
        except RentalError:
            self.session.rollback()
            raise

        self._mirror_create(rental, camera, customer)
        return rental

    # ------------------------------------------------------------------
    # Edits and transitions
    # ------------------------------------------------------------------

    def get(self, rental_id: int) -> Rental:
        rental = self.bookings.get(rental_id)
        if rental is None:
            raise NotFoundError("Rental not found")
        return rental

    def update(self, rental_id: int, data) -> Rental:
        rental = self.get(rental_id)
        sent = data.model_fields_set
        was_active = rental.is_active

        window = BookingWindow(
            data.start_date if data.start_date and "start_date" in sent else rental.start_date,
            data.end_date if data.end_date and "end_date" in sent else rental.end_date,
            data.start_time if "start_time" in sent else rental.start_time,
            data.end_time if "end_time" in sent else rental.end_time,
        )
        if not window.is_well_formed():
            raise ValidationError("rental must end after it starts")

        window_changed = window != rental.window
        new_status = data.status or rental.status
        daily_rate = data.daily_rate if data.daily_rate is not None else rental.daily_rate

        try:
            camera = None
            if new_status in ACTIVE_STATUSES and (window_changed or not was_active):
                camera = self.resources.get_resource(rental.camera_id, for_update=True)
                if camera is None:
                    raise NotFoundError("Camera not found")
                self.check_conflicts(camera, window, exclude_id=rental.id)

            rental.start_date = window.start_date
            rental.end_date = window.end_date
            rental.start_time = window.start_time
            rental.end_time = window.end_time
            rental.rental_type = "hourly" if window.has_times else "daily"

            if window_changed or "daily_rate" in sent or data.custom_total_amount:
                rental.total_amount = calculate_total(window, daily_rate, data.custom_total_amount)
            rental.daily_rate = daily_rate
            if "hourly_rate" in sent:
                rental.hourly_rate = data.hourly_rate
            if "deposit" in sent and data.deposit is not None:
                rental.deposit = data.deposit
            if "notes" in sent:
                rental.notes = data.notes
            if "actual_return_date" in sent:
                rental.actual_return_date = data.actual_return_date
            rental.status = new_status

            if was_active and not rental.is_active:
                self._release_camera(rental.camera_id)

            self.session.flush()
            if camera is not None:
                self.check_conflicts(camera, window, exclude_id=rental.id)
            self.session.commit()
        except RentalError:
            self.session.rollback()
            raise

        if new_status == "cancelled" and was_active:
            self._mirror_delete(rental)
        elif window_changed and rental.calendar_event_id:
            self._mirror_update(rental)
        return rental

    def complete(self, rental_id: int, actual_return_date=None) -> Rental:
        rental = self.get(rental_id)
        if not rental.is_active:
            raise ValidationError("Rental is not active")

        now = self.now()
        rental.status = "completed"
        rental.actual_return_date = actual_return_date or now.date()
        rental.actual_return_time = now.time().replace(second=0, microsecond=0)
        self._release_camera(rental.camera_id)
        self.session.commit()
        return rental

    def cancel(self, rental_id: int) -> Rental:
        rental = self.get(rental_id)
        if not rental.is_active:
            raise ValidationError("Rental not cancellable")

        self.bookings.update_booking_status(rental.id, "cancelled")
        self._release_camera(rental.camera_id)
        self.session.commit()

        self._mirror_delete(rental)
        return rental

    def delete(self, rental_id: int) -> None:
        rental = self.get(rental_id)
        if rental.is_active:
            self._release_camera(rental.camera_id)
        self._mirror_delete(rental, persist=False)
        self.bookings.delete_booking(rental)
        self.session.commit()

    def mark_overdue(self, now=None) -> list[Rental]:
        """Move active rentals whose effective end has passed to ``overdue``."""
        now = now or self.now()
        flagged = [r for r in self.bookings.list_overdue(now) if r.status == "active"]
        for rental in flagged:
            self.bookings.update_booking_status(rental.id, "overdue")
        self.session.commit()
        return flagged

    def _release_camera(self, camera_id: int) -> None:
        camera = self.resources.get_resource(camera_id)
        # maintenance is set by staff and must survive a return
        if camera is not None and camera.status == "rented":
            self.resources.set_resource_status(camera_id, "available")

    # ------------------------------------------------------------------
    # Calendar mirroring (best effort)
    # ------------------------------------------------------------------

    def _event_for(self, rental):
        # camera or customer rows may be gone; rental history outlives them
        if rental.camera is None or rental.customer is None:
            return None
        return build_rental_event(rental, rental.camera, rental.customer, self.calendar_timezone)

    def _mirror_create(self, rental, camera, customer) -> None:
        event = build_rental_event(rental, camera, customer, self.calendar_timezone)
        try:
            event_id = self.calendar.create_event(event)
        except DependencyFailure as exc:
            self.logger.warning("Calendar event for rental %s not created: %s", rental.id, exc)
            return
        if event_id:
            rental.calendar_event_id = event_id
            self.session.commit()

    def _mirror_update(self, rental) -> None:
        event = self._event_for(rental)
        if event is None:
            self.logger.warning("Calendar event %s not updated: camera or customer missing", rental.calendar_event_id)
            return
        try:
            self.calendar.update_event(rental.calendar_event_id, event)
        except DependencyFailure as exc:
            self.logger.warning("Calendar event %s not updated: %s", rental.calendar_event_id, exc)

    def _mirror_delete(self, rental, persist=True) -> None:
        event_id = rental.calendar_event_id
        if not event_id:
            return
        try:
            self.calendar.delete_event(event_id)
        except DependencyFailure as exc:
            self.logger.warning("Calendar event %s not deleted: %s", event_id, exc)
            return
        if persist:
            rental.calendar_event_id = None
            self.session.commit()
