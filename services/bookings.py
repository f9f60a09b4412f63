"""
Booking lifecycle: creation with service snapshot and confirmation code,
and staff-driven status changes.
"""
import secrets
import string
import time
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import (
    Booking,
    BOOKING_STATUSES,
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_NO_SHOW,
)
from models.user import ROLE_CUSTOMER
from services import repository
from services.errors import (
    BookingNotFound,
    BusinessNotFound,
    DuplicateBooking,
    InvalidStatus,
    InvalidTransition,
    ServiceNotFound,
    Unauthorized,
)
from services.identity import STAFF_ROLES
from utils.audit import log_event

CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_SUFFIX_LENGTH = 7


def generate_confirmation_code(now_ms=None) -> str:
    """BK-<epoch millis>-<7 uppercase base36 chars>. The unique index on the column catches collisions."""
    millis = int(time.time() * 1000) if now_ms is None else int(now_ms)
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"BK-{millis}-{suffix}"


# ---------- status transition policies ----------

class PermissiveTransitionPolicy:
    """Any status may move to any other status, backwards included."""

    name = "permissive"

    def check(self, current: str, new: str):
        return None


class StrictTransitionPolicy:
    name = "strict"

    ALLOWED = {
        STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
        STATUS_CONFIRMED: {STATUS_IN_PROGRESS, STATUS_CANCELLED, STATUS_NO_SHOW},
        STATUS_IN_PROGRESS: {STATUS_COMPLETED, STATUS_CANCELLED},
        STATUS_COMPLETED: set(),
        STATUS_CANCELLED: set(),
        STATUS_NO_SHOW: set(),
    }

    def check(self, current: str, new: str):
        if current == new:
            return None
        if new not in self.ALLOWED.get(current, set()):
            raise InvalidTransition(
                f"Cannot move booking from {current} to {new}",
                details={"from": current, "to": new},
            )
        return None


TRANSITION_POLICIES = {
    PermissiveTransitionPolicy.name: PermissiveTransitionPolicy,
    StrictTransitionPolicy.name: StrictTransitionPolicy,
}


def build_transition_policy(name: str):
    try:
        return TRANSITION_POLICIES[(name or "permissive").lower()]()
    except KeyError:
        raise ValueError(f"Unknown booking transition policy: {name!r}") from None


def current_transition_policy():
    return current_app.extensions["transition_policy"]


# ---------- lifecycle ----------

def create_booking(data, identity=None, business_id=None) -> Booking:
    """
    Persist a PENDING booking for a validated request.

    `data` is a services.validation.BookingRequest. Service name, price and
    duration are copied onto the booking so later service edits never
    change it.
    """
    business = repository.get_active_business(business_id)
    if business is None:
        raise BusinessNotFound()

    service = repository.find_active_service(business.id, data.service_id)
    if service is None:
        raise ServiceNotFound()

    booking = Booking(
        business_id=business.id,
        service_id=service.id,
        service_name=service.name,
        service_price=service.price,
        service_duration=service.duration,
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        customer_phone=data.customer_phone,
        customer_address=data.address,
        appointment_date=data.appointment_date,
        appointment_time=data.appointment_time,
        duration=service.duration,
        total_price=service.price,
        notes=data.notes,
        status=STATUS_PENDING,
        confirmation_code=generate_confirmation_code(),
        # guests book without an account
        user_id=identity.user_id if identity is not None and identity.role == ROLE_CUSTOMER else None,
    )

    try:
        repository.add_booking(booking)
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateBooking() from exc

    log_event(
        "BOOKING_CREATE",
        user_id=booking.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"service_id": service.id, "confirmation_code": booking.confirmation_code},
    )
    return booking


def get_booking(booking_id: str) -> Booking:
    booking = repository.get_booking(booking_id)
    if booking is None:
        raise BookingNotFound()
    return booking


def update_status(booking_id: str, new_status: str, actor, policy=None) -> Booking:
    if new_status not in BOOKING_STATUSES:
        raise InvalidStatus(details={"allowed": list(BOOKING_STATUSES)})

    booking = get_booking(booking_id)

    if actor is None or actor.role not in STAFF_ROLES:
        raise Unauthorized()

    policy = policy or current_transition_policy()
    previous = booking.status
    policy.check(previous, new_status)

    booking.status = new_status
    if new_status == STATUS_COMPLETED and booking.completed_at is None:
        booking.completed_at = datetime.utcnow()
    db.session.commit()

    log_event(
        "BOOKING_STATUS_UPDATE",
        user_id=actor.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"from": previous, "to": new_status},
    )
    return booking


# ---------- projections ----------

def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value else None


def created_projection(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "confirmationCode": booking.confirmation_code,
        "customerName": booking.customer_name,
        "serviceName": booking.service_name,
        "appointmentDate": _iso(booking.appointment_date),
        "appointmentTime": booking.appointment_time,
        "status": booking.status,
        "business": booking.business.public_contact() if booking.business else None,
    }


def detail_projection(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "confirmationCode": booking.confirmation_code,
        "customerName": booking.customer_name,
        "customerEmail": booking.customer_email,
        "customerPhone": booking.customer_phone,
        "customerAddress": booking.customer_address,
        "serviceName": booking.service_name,
        "servicePrice": _money(booking.service_price),
        "serviceDuration": booking.service_duration,
        "appointmentDate": _iso(booking.appointment_date),
        "appointmentTime": booking.appointment_time,
        "duration": booking.duration,
        "totalPrice": _money(booking.total_price),
        "notes": booking.notes,
        "status": booking.status,
        "completedAt": _iso(booking.completed_at),
        "business": booking.business.public_contact() if booking.business else None,
        "createdAt": _iso(booking.created_at),
    }


def admin_projection(booking: Booking) -> dict:
    row = detail_projection(booking)
    row.update({
        "businessId": booking.business_id,
        "serviceId": booking.service_id,
        "userId": booking.user_id,
        "reminderSent": booking.reminder_sent,
        "service": {
            "id": booking.service.id,
            "name": booking.service.name,
            "price": _money(booking.service.price),
            "duration": booking.service.duration,
        } if booking.service else None,
    })
    return row
