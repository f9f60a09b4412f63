from flask import Blueprint, request

from services import bookings, repository
from utils.responses import ok, fail

pages_bp = Blueprint("pages", __name__)

REASON_MESSAGES = {
    "VALIDATION_ERROR": "Some booking details were invalid. Please check the form and try again.",
    "SERVICE_NOT_FOUND": "The selected service is no longer available.",
    "BUSINESS_NOT_FOUND": "Bookings are not available right now.",
    "DUPLICATE_BOOKING": "This booking already exists.",
    "RATE_LIMIT_EXCEEDED": "Too many booking attempts. Please try again later.",
    "CSRF_FAILED": "Your session could not be verified. Please reload the page and try again.",
    "SYNC_MISMATCH": "Your account is not fully set up. Please contact support.",
}
DEFAULT_REASON_MESSAGE = "Something went wrong. Please try again."


@pages_bp.get("/error")
def error_page():
    reason = (request.args.get("reason") or "").strip().upper() or "SERVER_ERROR"
    return ok({"reason": reason, "message": REASON_MESSAGES.get(reason, DEFAULT_REASON_MESSAGE)})


@pages_bp.get("/confirmation")
def confirmation_page():
    code = (request.args.get("code") or "").strip()
    booking = repository.get_booking_by_code(code) if code else None
    if booking is None:
        return fail("BOOKING_NOT_FOUND", "Booking not found", 404)
    return ok(bookings.created_projection(booking))
