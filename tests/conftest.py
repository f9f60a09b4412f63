from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.booking import Booking
from models.service import Service
from security.rate_limit import RateLimiter
from services import identity as identity_service
from utils.seed import seed_demo_business

OWNER_EMAIL = "sarah@sparkleclean.com"
OWNER_PASSWORD = "admin123"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def frozen_limiters(app, clock):
    """Swap the app's limiters for ones driven by the fake clock."""
    window = app.config["RATE_LIMIT_WINDOW_SECONDS"]
    app.extensions["rate_limiters"] = {
        "booking": RateLimiter(window_seconds=window, clock=clock),
        "admin": RateLimiter(window_seconds=window, clock=clock),
    }
    return app.extensions["rate_limiters"]


@pytest.fixture
def business(app):
    business, _ = seed_demo_business(OWNER_EMAIL, OWNER_PASSWORD)
    return business


@pytest.fixture
def service(business):
    return Service.query.filter_by(business_id=business.id, name="Basic House Cleaning").one()


def future_day(days: int = 7) -> str:
    return (datetime.utcnow() + timedelta(days=days)).date().isoformat()


def booking_payload(service_id: str, **overrides) -> dict:
    payload = {
        "customerName": "John Smith",
        "customerEmail": "john@example.com",
        "customerPhone": "+1 555 123 4567",
        "service": service_id,
        "date": future_day(),
        "time": "10:30",
        "address": "42 Elm Street, Springfield",
        "notes": "Ring the bell twice",
    }
    payload.update(overrides)
    return payload


def login_token(app, email: str, password: str) -> str:
    with app.test_request_context():
        token, _ = identity_service.login(email, password)
    return token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(app, business):
    return login_token(app, OWNER_EMAIL, OWNER_PASSWORD)


@pytest.fixture
def staff_token(app, business):
    identity_service.register_user(
        "mike@sparkleclean.com", "staff123", "Mike Chen",
        business_id=business.id, role="STAFF",
    )
    return login_token(app, "mike@sparkleclean.com", "staff123")


@pytest.fixture
def customer_token(app, business):
    identity_service.register_user("jane@example.com", "secret123", "Jane Doe")
    return login_token(app, "jane@example.com", "secret123")


@pytest.fixture
def make_booking(business, service):
    """Insert a booking row directly, bypassing validation and rate limits."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "business_id": business.id,
            "service_id": service.id,
            "service_name": service.name,
            "service_price": service.price,
            "service_duration": service.duration,
            "customer_name": f"Customer {n}",
            "customer_email": f"customer{n}@example.com",
            "customer_phone": f"555-000-{n:04d}",
            "customer_address": f"{n} Test Street",
            "appointment_date": datetime.utcnow() + timedelta(days=n),
            "appointment_time": "09:00",
            "duration": service.duration,
            "total_price": Decimal(service.price),
            "confirmation_code": f"BK-1700000000000-T{n:06d}",
        }
        fields.update(overrides)
        booking = Booking(**fields)
        db.session.add(booking)
        db.session.commit()
        return booking

    return _make
