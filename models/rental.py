from datetime import datetime
from models.db import db
from services.intervals import BookingWindow, format_time

ACTIVE_STATUSES = ("active", "overdue")
RENTAL_STATUSES = ("active", "overdue", "completed", "cancelled")

class Rental(db.Model):
    __tablename__ = "rentals"

    id = db.Column(db.Integer, primary_key=True)

    camera_id = db.Column(db.Integer, db.ForeignKey("cameras.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    start_date = db.Column(db.Date, nullable=False, index=True)
    end_date = db.Column(db.Date, nullable=False, index=True)
    # NULL times mean the rental covers the whole calendar day
    start_time = db.Column(db.Time, nullable=True)
    end_time = db.Column(db.Time, nullable=True)

    actual_return_date = db.Column(db.Date, nullable=True)
    actual_return_time = db.Column(db.Time, nullable=True)

    daily_rate = db.Column(db.Numeric(10, 2), nullable=False)
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=True)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    deposit = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    # status values: active, overdue, completed, cancelled
    rental_type = db.Column(db.String(20), nullable=False, default="daily")  # daily, hourly
    notes = db.Column(db.Text, nullable=True)

    # set only when the calendar mirror accepted the event
    calendar_event_id = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    camera = db.relationship("Camera", back_populates="rentals")
    customer = db.relationship("Customer", back_populates="rentals")

    __table_args__ = (
        db.CheckConstraint("end_date >= start_date", name="ck_rental_dates"),
    )

    @property
    def window(self) -> BookingWindow:
        return BookingWindow(self.start_date, self.end_date, self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self, with_relations=False):
        out = {
            "id": self.id,
            "camera_id": self.camera_id,
            "customer_id": self.customer_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
            "actual_return_date": self.actual_return_date.isoformat() if self.actual_return_date else None,
            "actual_return_time": format_time(self.actual_return_time),
            "daily_rate": float(self.daily_rate),
            "hourly_rate": float(self.hourly_rate) if self.hourly_rate is not None else None,
            "total_amount": float(self.total_amount),
            "deposit": float(self.deposit or 0),
            "status": self.status,
            "rental_type": self.rental_type,
            "notes": self.notes,
            "calendar_event_id": self.calendar_event_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if with_relations:
            camera = self.camera
            customer = self.customer
            out.update({
                "camera_name": camera.name if camera else None,
                "brand": camera.brand if camera else None,
                "model": camera.model if camera else None,
                "category": camera.category if camera else None,
                "serial_number": camera.serial_number if camera else None,
                "customer_name": customer.name if customer else None,
                "customer_phone": customer.phone if customer else None,
                "customer_email": customer.email if customer else None,
                "customer_address": customer.address if customer else None,
            })
        return out
