"""Domain models package."""
from authcore.models.user import User
from authcore.models.password_reset_token import PasswordResetToken
from authcore.models.enums import (
    UserStatus,
    UserRole,
    TokenFailureReason,
    ResetRequestOutcome,
)

__all__ = [
    # Models
    "User",
    "PasswordResetToken",
    # Enums
    "UserStatus",
    "UserRole",
    "TokenFailureReason",
    "ResetRequestOutcome",
]
