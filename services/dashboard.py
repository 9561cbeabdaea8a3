"""Read-only statistics for the dashboard screen."""

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from models.camera import Camera
from models.customer import Customer
from models.rental import ACTIVE_STATUSES, Rental


def month_start(day: date, offset: int = 0) -> date:
    years, month = divmod(day.month - 1 + offset, 12)
    return date(day.year + years, month + 1, 1)


class DashboardAggregator:
    def __init__(self, session, bookings) -> None:
        self.session = session
        self.bookings = bookings

    def _count(self, model, *criteria) -> int:
        return self.session.query(func.count(model.id)).filter(*criteria).scalar() or 0

    def _revenue(self, start: date | None = None, end: date | None = None) -> float:
        q = self.session.query(func.coalesce(func.sum(Rental.total_amount), 0)).filter(
            Rental.status != "cancelled"
        )
        if start is not None:
            q = q.filter(Rental.start_date >= start)
        if end is not None:
            q = q.filter(Rental.start_date < end)
        return float(q.scalar() or 0)

    def monthly_series(self, today: date, months: int = 6) -> list[dict]:
        out = []
        for offset in range(-(months - 1), 1):
            start = month_start(today, offset)
            end = month_start(today, offset + 1)
            count = self._count(
                Rental, Rental.status != "cancelled", Rental.start_date >= start, Rental.start_date < end
            )
            if not count:
                continue
            out.append({
                "month": start.strftime("%Y-%m"),
                "revenue": self._revenue(start, end),
                "rental_count": count,
            })
        return out

    def stats(self, now) -> dict:
        today = now.date()

        recent = (
            self.session.query(Rental)
            .filter(Rental.status.in_(ACTIVE_STATUSES))
            .order_by(Rental.start_date.desc())
            .limit(10)
            .all()
        )

        return {
            "cameras": {
                "total": self._count(Camera),
                "available": self._count(Camera, Camera.status == "available"),
                "rented": self._count(Camera, Camera.status == "rented"),
                "maintenance": self._count(Camera, Camera.status == "maintenance"),
            },
            "rentals": {
                "active": self._count(Rental, Rental.status.in_(ACTIVE_STATUSES)),
                "overdue": len(self.bookings.list_overdue(now)),
            },
            "customers": {
                "total": self._count(Customer),
            },
            "revenue": {
                "monthly": self._revenue(month_start(today), month_start(today, 1)),
                "yearly": self._revenue(date(today.year, 1, 1), date(today.year + 1, 1, 1)),
                "total": self._revenue(),
            },
            "recentRentals": [r.to_dict(with_relations=True) for r in recent],
            "monthlyData": self.monthly_series(today),
        }
