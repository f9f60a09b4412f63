import math
from dataclasses import dataclass
from datetime import datetime, time as dtime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.orm import joinedload

from models import db
from models.booking import (
    Booking,
    BOOKING_STATUSES,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
)
from services.errors import InvalidStatus, ValidationFailed
from services.validation import to_naive_utc

SORT_APPOINTMENT = "appointment"
SORT_CREATED = "created"
SORTS = (SORT_APPOINTMENT, SORT_CREATED)


@dataclass
class BookingFilters:
    status: Optional[str] = None
    service_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    business_id: Optional[str] = None


def _parse_bound(raw: str, field: str, end_of_day: bool) -> datetime:
    text = raw.strip()
    try:
        if len(text) == 10:
            day = datetime.fromisoformat(text).date()
            return datetime.combine(day, dtime.max if end_of_day else dtime.min)
        return to_naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        raise ValidationFailed(
            "Invalid query parameters",
            details=[{"field": field, "message": "Use YYYY-MM-DD or an ISO datetime"}],
        ) from None


def _as_int(raw, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def filters_from_args(args, business_id=None) -> BookingFilters:
    """Build filters from query params: status, service, dateFrom, dateTo, search."""
    status = (args.get("status") or "").strip().upper() or None
    if status and status not in BOOKING_STATUSES:
        raise InvalidStatus(details={"allowed": list(BOOKING_STATUSES)})

    date_from = args.get("dateFrom")
    date_to = args.get("dateTo")
    return BookingFilters(
        status=status,
        service_id=(args.get("service") or "").strip() or None,
        date_from=_parse_bound(date_from, "dateFrom", end_of_day=False) if date_from else None,
        # a bare date includes the whole day
        date_to=_parse_bound(date_to, "dateTo", end_of_day=True) if date_to else None,
        search=(args.get("search") or "").strip() or None,
        business_id=business_id,
    )


def page_args(args):
    default_limit = current_app.config.get("BOOKINGS_PAGE_SIZE", 10)
    return _as_int(args.get("page"), 1), _as_int(args.get("limit"), default_limit)


def clamp_page(page: int, limit: int):
    max_limit = current_app.config.get("BOOKINGS_MAX_PAGE_SIZE", 50)
    default_limit = current_app.config.get("BOOKINGS_PAGE_SIZE", 10)
    page = max(page or 1, 1)
    if not limit or limit < 1:
        limit = default_limit
    return page, min(limit, max_limit)


def pagination(total: int, page: int, limit: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def bookings_query(filters: BookingFilters):
    q = Booking.active()

    if filters.business_id:
        q = q.filter(Booking.business_id == filters.business_id)
    if filters.status:
        q = q.filter(Booking.status == filters.status)
    if filters.service_id:
        q = q.filter(Booking.service_id == filters.service_id)
    if filters.date_from:
        q = q.filter(Booking.appointment_date >= filters.date_from)
    if filters.date_to:
        q = q.filter(Booking.appointment_date <= filters.date_to)
    if filters.search:
        like = f"%{_escape_like(filters.search)}%"
        q = q.filter(or_(
            Booking.customer_name.ilike(like, escape="\\"),
            Booking.customer_email.ilike(like, escape="\\"),
            Booking.customer_phone.ilike(like, escape="\\"),
            Booking.confirmation_code.ilike(like, escape="\\"),
        ))
    return q


def list_bookings(filters: BookingFilters, page: int = 1, limit: int = None, sort: str = SORT_APPOINTMENT) -> dict:
    page, limit = clamp_page(page, limit)
    if sort not in SORTS:
        sort = SORT_APPOINTMENT

    q = bookings_query(filters)
    total = q.count()

    primary = Booking.created_at.desc() if sort == SORT_CREATED else Booking.appointment_date.desc()
    items = (
        q.options(joinedload(Booking.service), joinedload(Booking.business))
        .order_by(primary, Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"items": items, "pagination": pagination(total, page, limit)}


def dashboard_stats(business_id: Optional[str]) -> dict:
    """Headline numbers for the admin dashboard, scoped to one business when given."""
    def scoped():
        q = Booking.active()
        if business_id:
            q = q.filter(Booking.business_id == business_id)
        return q

    revenue_q = db.session.query(func.coalesce(func.sum(Booking.total_price), 0)).filter(
        Booking.deleted_at.is_(None),
        Booking.status == STATUS_COMPLETED,
    )
    if business_id:
        revenue_q = revenue_q.filter(Booking.business_id == business_id)

    today = datetime.combine(datetime.utcnow().date(), dtime.min)
    week_ago = today - timedelta(days=7)

    recent = scoped().order_by(Booking.created_at.desc()).limit(10).all()
    return {
        "total": scoped().count(),
        "pending": scoped().filter(Booking.status == STATUS_PENDING).count(),
        "confirmed": scoped().filter(Booking.status == STATUS_CONFIRMED).count(),
        "revenue": float(revenue_q.scalar() or 0),
        "today": scoped().filter(Booking.created_at >= today).count(),
        "thisWeek": scoped().filter(Booking.created_at >= week_ago).count(),
        "recent": [
            {
                "id": b.id,
                "customerName": b.customer_name,
                "serviceName": b.service_name,
                "appointmentDate": b.appointment_date.isoformat(),
                "status": b.status,
            }
            for b in recent
        ],
    }
