from datetime import datetime
from models.db import db, new_id, SoftDeleteMixin

class Business(SoftDeleteMixin, db.Model):
    __tablename__ = "businesses"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    services = db.relationship("Service", back_populates="business", lazy="dynamic")

    def public_contact(self) -> dict:
        # never expose address/slug/internal flags on customer-facing payloads
        return {"name": self.name, "email": self.email, "phone": self.phone}
