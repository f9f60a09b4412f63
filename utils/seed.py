from decimal import Decimal

from models import db
from models.business import Business
from models.service import Service
from services.identity import register_business

DEMO_BUSINESS = {
    "business_name": "SparkleClean Professional Services",
    "slug": "sparkle-clean",
    "business_email": "hello@sparkleclean.com",
    "business_phone": "+1-555-253-2601",
    "address": "123 Main Street, Downtown, NY 10001",
    "description": (
        "Professional residential and commercial cleaning services with "
        "eco-friendly products and experienced staff."
    ),
}

DEMO_SERVICES = [
    {
        "name": "Basic House Cleaning",
        "description": "Dusting, vacuuming, mopping, bathroom and kitchen cleaning for regular maintenance.",
        "price": Decimal("120.00"),
        "duration": 120,
    },
    {
        "name": "Deep Cleaning Service",
        "description": "Baseboards, inside appliances, detailed bathroom scrubbing and thorough kitchen cleaning.",
        "price": Decimal("200.00"),
        "duration": 240,
    },
    {
        "name": "Office Space Cleaning",
        "description": "Desk sanitization, floor cleaning, restroom maintenance and common area tidying.",
        "price": Decimal("150.00"),
        "duration": 180,
    },
]

def seed_demo_business(owner_email: str, owner_password: str, owner_name: str = "Sarah Johnson"):
    """Idempotent: returns (business, created)."""
    existing = Business.query.filter_by(slug=DEMO_BUSINESS["slug"]).first()
    if existing:
        return existing, False

    business, _ = register_business(
        owner_email=owner_email,
        password=owner_password,
        owner_name=owner_name,
        **DEMO_BUSINESS,
    )
    for fields in DEMO_SERVICES:
        db.session.add(Service(business_id=business.id, **fields))
    db.session.commit()
    return business, True
