class ServiceError(Exception):
    """Base for every failure the API reports with a stable error code."""

    code = "SERVER_ERROR"
    http_status = 500
    message = "Unexpected error"

    def __init__(self, message=None, details=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(ServiceError):
    code = "VALIDATION_ERROR"
    http_status = 400
    message = "Invalid booking data"


class BusinessNotFound(ServiceError):
    code = "BUSINESS_NOT_FOUND"
    http_status = 400
    message = "No active business found"


class ServiceNotFound(ServiceError):
    code = "SERVICE_NOT_FOUND"
    http_status = 400
    message = "Selected service is not available"


class BookingNotFound(ServiceError):
    code = "BOOKING_NOT_FOUND"
    http_status = 404
    message = "Booking not found"


class InvalidStatus(ServiceError):
    code = "INVALID_STATUS"
    http_status = 400
    message = "Invalid or missing status value"


class InvalidTransition(ServiceError):
    code = "INVALID_TRANSITION"
    http_status = 409
    message = "Status transition not allowed"


class DuplicateBooking(ServiceError):
    code = "DUPLICATE_BOOKING"
    http_status = 409
    message = "This booking already exists"


class Unauthorized(ServiceError):
    code = "UNAUTHORIZED"
    http_status = 401
    message = "Unauthorized"


class SyncMismatch(ServiceError):
    """The auth provider knows the principal but the local user record disagrees."""

    code = "SYNC_MISMATCH"
    http_status = 403
    message = "Account is not fully provisioned"


class AccountExists(ServiceError):
    code = "ACCOUNT_EXISTS"
    http_status = 409
    message = "Email already registered"


class InvalidCredentials(ServiceError):
    code = "INVALID_CREDENTIALS"
    http_status = 401
    message = "Invalid credentials"


class AccountLocked(ServiceError):
    code = "ACCOUNT_LOCKED"
    http_status = 429
    message = "Account temporarily locked. Try again later."

    def __init__(self, retry_after: int, message=None):
        super().__init__(message, details={"retry_after_seconds": retry_after})
        self.retry_after = retry_after


class RateLimited(ServiceError):
    code = "RATE_LIMIT_EXCEEDED"
    http_status = 429
    message = "Too many requests. Please try again later."

    def __init__(self, retry_after: int, message=None):
        super().__init__(message, details={"retry_after_seconds": retry_after})
        self.retry_after = retry_after
