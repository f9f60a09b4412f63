from flask import Blueprint, request, current_app, g, redirect, url_for

from security.rate_limit import enforce_rate_limit
from security.rbac import require_roles
from services import admin_queries, bookings
from services.errors import InvalidStatus, ServiceError
from services.validation import validate_booking
from utils.responses import ok, fail, is_form_submission

booking_bp = Blueprint("booking", __name__)


def _payload():
    if is_form_submission():
        return request.form.to_dict()
    return request.get_json(silent=True)


# ---------- PUBLIC: create booking ----------
@booking_bp.post("/bookings")
def create_booking():
    try:
        enforce_rate_limit("booking", current_app.config.get("BOOKING_RATE_LIMIT", 5))
        data = validate_booking(_payload())
        booking = bookings.create_booking(data, identity=g.identity)
    except ServiceError as exc:
        if is_form_submission():
            # browser flow: land on the generic error page with a reason code
            return redirect(url_for("pages.error_page", reason=exc.code), 303)
        raise

    if is_form_submission():
        return redirect(url_for("pages.confirmation_page", code=booking.confirmation_code), 303)
    return ok(bookings.created_projection(booking), "Booking created successfully", 201)


# ---------- PUBLIC: booking details ----------
@booking_bp.get("/bookings/<booking_id>")
def get_booking(booking_id: str):
    booking = bookings.get_booking(booking_id)
    return ok(bookings.detail_projection(booking), "Booking details retrieved successfully")


# ---------- STAFF/ADMIN: update status ----------
@booking_bp.patch("/bookings/<booking_id>")
@require_roles("STAFF", "ADMIN")
def update_booking_status(booking_id: str):
    body = request.get_json(silent=True) or {}
    status = body.get("status") if isinstance(body, dict) else None
    if not isinstance(status, str):
        raise InvalidStatus()

    booking = bookings.update_status(booking_id, status, g.identity)
    return ok(bookings.detail_projection(booking), "Booking status updated successfully")


# ---------- STAFF/ADMIN: list bookings ----------
@booking_bp.get("/bookings")
@require_roles("STAFF", "ADMIN")
def list_bookings():
    enforce_rate_limit("admin", current_app.config.get("ADMIN_RATE_LIMIT", 20))

    filters = admin_queries.filters_from_args(request.args, business_id=g.identity.business_id)
    page, limit = admin_queries.page_args(request.args)
    sort = (request.args.get("sort") or admin_queries.SORT_APPOINTMENT).strip().lower()

    result = admin_queries.list_bookings(filters, page=page, limit=limit, sort=sort)
    return ok({
        "bookings": [bookings.admin_projection(b) for b in result["items"]],
        "pagination": result["pagination"],
    })


# Bookings are never replaced or hard-deleted
@booking_bp.route("/bookings", methods=["PUT", "DELETE"])
@booking_bp.route("/bookings/<booking_id>", methods=["PUT", "DELETE"])
def method_not_allowed(booking_id=None):
    return fail("METHOD_NOT_ALLOWED", f"{request.method} method not allowed.", 405)
