from datetime import datetime
from models.db import db, SoftDeleteMixin

ROLE_CUSTOMER = "CUSTOMER"
ROLE_STAFF = "STAFF"
ROLE_ADMIN = "ADMIN"
ROLE_SUPER_ADMIN = "SUPER_ADMIN"

ROLES = (ROLE_CUSTOMER, ROLE_STAFF, ROLE_ADMIN, ROLE_SUPER_ADMIN)


class User(SoftDeleteMixin, db.Model):
    """Local application user.

    The primary key is the auth account id, so the credential store and this
    table always agree on who a principal is.
    """
    __tablename__ = "users"

    id = db.Column(db.String(32), primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(30), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_CUSTOMER)

    # null for pure customers
    business_id = db.Column(db.String(32), db.ForeignKey("businesses.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    business = db.relationship("Business")
