from datetime import datetime
from models.db import db, new_id, SoftDeleteMixin

class Service(SoftDeleteMixin, db.Model):
    __tablename__ = "services"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    business_id = db.Column(db.String(32), db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration = db.Column(db.Integer, nullable=False)  # minutes

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    business = db.relationship("Business", back_populates="services")

    __table_args__ = (
        db.CheckConstraint("price > 0", name="ck_service_price_positive"),
        db.CheckConstraint("duration > 0", name="ck_service_duration_positive"),
    )
