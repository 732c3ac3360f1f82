"""Declarative base model with shared columns."""
import uuid

from sqlalchemy import Uuid

from authcore.extensions import db
from authcore.utils.clock import utcnow


class BaseModel(db.Model):
    """
    Abstract base for all models.

    Provides a UUID primary key, audit timestamps and a row version
    counter.
    """

    __abstract__ = True

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )
    version = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
