from datetime import datetime
from models.db import db

class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(30), nullable=False, index=True)
    address = db.Column(db.String(255), nullable=True)
    id_number = db.Column(db.String(60), nullable=True)  # national id / passport kept as deposit proof
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    rentals = db.relationship("Rental", back_populates="customer", lazy="dynamic", passive_deletes="all")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "id_number": self.id_number,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
