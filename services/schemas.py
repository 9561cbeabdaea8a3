"""Typed request bodies, validated at the API boundary."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from services.errors import ValidationError
from services.intervals import BookingWindow, parse_time

RentalStatus = Literal["active", "overdue", "completed", "cancelled"]
CameraStatus = Literal["available", "rented", "maintenance"]


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _date_part(value):
    value = _blank_to_none(value)
    # browsers sometimes send full ISO timestamps for date inputs
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


def parse_payload(schema, data):
    """Validate ``data`` against ``schema`` or raise a 400-mapped ValidationError."""
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as exc:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]) or "body", "message": err["msg"]}
            for err in exc.errors()
        ]
        first = details[0]
        raise ValidationError(f"{first['field']}: {first['message']}", details=details) from exc


# ---------------------------------------------------------------------------
# Rentals
# ---------------------------------------------------------------------------


class _WindowFields(BaseModel):
    @field_validator("start_date", "end_date", mode="before", check_fields=False)
    @classmethod
    def _dates(cls, value):
        return _date_part(value)

    @field_validator("start_time", "end_time", mode="before", check_fields=False)
    @classmethod
    def _times(cls, value):
        return parse_time(value)


class RentalCreate(_WindowFields):
    camera_id: int
    customer_id: int
    start_date: date
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    daily_rate: Optional[Decimal] = Field(default=None, ge=0)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    deposit: Optional[Decimal] = Field(default=Decimal(0), ge=0)
    notes: Optional[str] = None
    custom_total_amount: Optional[Decimal] = None

    @field_validator("daily_rate", "hourly_rate", "deposit", "custom_total_amount", "notes", mode="before")
    @classmethod
    def _optional(cls, value):
        return _blank_to_none(value)

    @field_validator("deposit", mode="after")
    @classmethod
    def _deposit_default(cls, value):
        return value if value is not None else Decimal(0)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> RentalCreate:
        if not self.window().is_well_formed():
            raise ValueError("rental must end after it starts")
        return self

    def window(self) -> BookingWindow:
        return BookingWindow(
            self.start_date,
            self.end_date or self.start_date,
            self.start_time,
            self.end_time,
        )


class RentalUpdate(_WindowFields):
    """Partial update; ``model_fields_set`` tells which fields were sent."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    daily_rate: Optional[Decimal] = Field(default=None, ge=0)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    deposit: Optional[Decimal] = Field(default=None, ge=0)
    actual_return_date: Optional[date] = None
    status: Optional[RentalStatus] = None
    notes: Optional[str] = None
    custom_total_amount: Optional[Decimal] = None

    @field_validator("daily_rate", "hourly_rate", "deposit", "custom_total_amount", "status", mode="before")
    @classmethod
    def _optional(cls, value):
        return _blank_to_none(value)

    @field_validator("actual_return_date", mode="before")
    @classmethod
    def _return_date(cls, value):
        return _date_part(value)


class ReturnRequest(BaseModel):
    actual_return_date: Optional[date] = None

    @field_validator("actual_return_date", mode="before")
    @classmethod
    def _return_date(cls, value):
        return _date_part(value)


class AvailabilityQuery(_WindowFields):
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    category: Optional[str] = None
    search: Optional[str] = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> AvailabilityQuery:
        if not self.window().is_well_formed():
            raise ValueError("end must not be before start")
        return self

    def window(self) -> BookingWindow:
        return BookingWindow(self.start_date, self.end_date, self.start_time, self.end_time)


# ---------------------------------------------------------------------------
# Cameras / customers
# ---------------------------------------------------------------------------


class CameraCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    brand: str = Field(min_length=1, max_length=80)
    model: str = Field(min_length=1, max_length=80)
    category: str = Field(min_length=1, max_length=60)
    serial_number: Optional[str] = None
    purchase_date: Optional[date] = None
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    daily_rate: Decimal = Field(ge=0)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    condition: str = "excellent"
    description: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator(
        "serial_number", "purchase_date", "purchase_price", "hourly_rate", "description", "image_url",
        mode="before",
    )
    @classmethod
    def _optional(cls, value):
        # blank serials become NULL so the unique constraint ignores them
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value

    @field_validator("name", "brand", "model", "category", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class CameraUpdate(CameraCreate):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    brand: Optional[str] = Field(default=None, min_length=1, max_length=80)
    model: Optional[str] = Field(default=None, min_length=1, max_length=80)
    category: Optional[str] = Field(default=None, min_length=1, max_length=60)
    daily_rate: Optional[Decimal] = Field(default=None, ge=0)
    condition: Optional[str] = None
    status: Optional[CameraStatus] = None


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    phone: str = Field(min_length=1, max_length=30)
    email: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=255)
    id_number: Optional[str] = Field(default=None, max_length=60)
    notes: Optional[str] = None

    @field_validator("name", "phone", "email", "address", "id_number", "notes", mode="before")
    @classmethod
    def _strip(cls, value):
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value


class CustomerUpdate(CustomerCreate):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=30)
