"""Password reset token model."""
from datetime import datetime
from typing import Optional

from sqlalchemy import Uuid

from authcore.extensions import db
from authcore.models.base import BaseModel
from authcore.utils.clock import utcnow


class PasswordResetToken(BaseModel):
    """
    Password reset token model.

    Only the scrypt ``salt:hash`` of the token is stored, never the
    plaintext. Superseded tokens are soft-expired (``expires_at`` moved to
    the present) instead of deleted so they remain available for audit.
    """

    __tablename__ = "password_reset_token"

    user_id = db.Column(
        Uuid(as_uuid=True),
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    token_hash = db.Column(db.String(255), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    used_at = db.Column(db.DateTime, nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<PasswordResetToken(id={self.id}, user_id={self.user_id})>"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if token has expired (valid only while now < expires_at)."""
        return (now or utcnow()) >= self.expires_at

    @property
    def is_used(self) -> bool:
        """Check if token has been used."""
        return self.used_at is not None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Check if token is valid (not expired and not used)."""
        return not self.is_used and not self.is_expired(now)
