from datetime import datetime
from models.db import db

CAMERA_STATUSES = ("available", "rented", "maintenance")

class Camera(db.Model):
    __tablename__ = "cameras"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    brand = db.Column(db.String(80), nullable=False)
    model = db.Column(db.String(80), nullable=False)
    category = db.Column(db.String(60), nullable=False, index=True)

    # blank serials are stored as NULL so the unique constraint only applies to real ones
    serial_number = db.Column(db.String(120), unique=True, nullable=True)
    purchase_date = db.Column(db.Date, nullable=True)
    purchase_price = db.Column(db.Numeric(10, 2), nullable=True)

    daily_rate = db.Column(db.Numeric(10, 2), nullable=False)
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="available", index=True)
    # status values: available, rented, maintenance
    condition = db.Column(db.String(40), nullable=False, default="excellent")
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    rentals = db.relationship("Rental", back_populates="camera", lazy="dynamic", passive_deletes="all")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "model": self.model,
            "category": self.category,
            "serial_number": self.serial_number,
            "purchase_date": self.purchase_date.isoformat() if self.purchase_date else None,
            "purchase_price": float(self.purchase_price) if self.purchase_price is not None else None,
            "daily_rate": float(self.daily_rate),
            "hourly_rate": float(self.hourly_rate) if self.hourly_rate is not None else None,
            "status": self.status,
            "condition": self.condition,
            "description": self.description,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
