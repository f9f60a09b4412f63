from datetime import datetime
from models.db import db, new_id, SoftDeleteMixin

STATUS_PENDING = "PENDING"
STATUS_CONFIRMED = "CONFIRMED"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"
STATUS_NO_SHOW = "NO_SHOW"

BOOKING_STATUSES = (
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_NO_SHOW,
)


class Booking(SoftDeleteMixin, db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    business_id = db.Column(db.String(32), db.ForeignKey("businesses.id"), nullable=False, index=True)
    # may dangle once the service is retired; the snapshot below keeps the booking readable
    service_id = db.Column(db.String(32), db.ForeignKey("services.id"), nullable=True, index=True)
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=True, index=True)

    # snapshot of the service at booking time, never updated afterwards
    service_name = db.Column(db.String(120), nullable=False)
    service_price = db.Column(db.Numeric(10, 2), nullable=False)
    service_duration = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(50), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(20), nullable=False)
    customer_address = db.Column(db.String(200), nullable=False)

    appointment_date = db.Column(db.DateTime, nullable=False, index=True)
    appointment_time = db.Column(db.String(5), nullable=False)  # HH:MM, 24h
    duration = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    notes = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    confirmation_code = db.Column(db.String(40), unique=True, nullable=False, index=True)

    reminder_sent = db.Column(db.Boolean, default=False, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    business = db.relationship("Business")
    service = db.relationship("Service")
