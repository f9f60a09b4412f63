"""Store access for businesses, services and bookings.

Every "active" lookup excludes soft-deleted rows and rows whose active flag
is off.
"""
from models import db
from models.booking import Booking
from models.business import Business
from models.service import Service


def get_active_business(business_id=None):
    q = Business.active()
    if business_id:
        return q.filter(Business.id == business_id).first()
    return q.order_by(Business.created_at.asc()).first()


def get_business_by_slug(slug: str):
    return Business.active().filter(Business.slug == slug).first()


def list_active_services(business_id: str):
    return (
        Service.active()
        .filter(Service.business_id == business_id)
        .order_by(Service.name.asc())
        .all()
    )


def find_active_service(business_id: str, service_id: str):
    return (
        Service.active()
        .filter(Service.business_id == business_id, Service.id == service_id)
        .first()
    )


def get_booking(booking_id: str):
    """Non-deleted booking by id, or None."""
    if not booking_id:
        return None
    return Booking.active().filter(Booking.id == booking_id).first()


def get_booking_by_code(confirmation_code: str):
    return Booking.active().filter(Booking.confirmation_code == confirmation_code).first()


def add_booking(booking: Booking) -> Booking:
    db.session.add(booking)
    db.session.commit()
    return booking


def soft_delete(row):
    row.soft_delete()
    db.session.commit()
    return row
