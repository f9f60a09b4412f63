import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def new_id() -> str:
    return uuid.uuid4().hex


class SoftDeleteMixin:
    """Rows are never removed; a non-null deleted_at hides them from active queries."""

    deleted_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self):
        if self.deleted_at is None:
            self.deleted_at = datetime.utcnow()

    @classmethod
    def active(cls):
        q = cls.query.filter(cls.deleted_at.is_(None))
        if hasattr(cls, "is_active"):
            q = q.filter(cls.is_active.is_(True))
        return q
