"""Enumeration types for models."""
import enum


class UserStatus(enum.Enum):
    """User account status."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class UserRole(enum.Enum):
    """User role."""

    USER = "user"
    CONTRIBUTOR = "contributor"
    ADMIN = "admin"


class TokenFailureReason(enum.Enum):
    """
    Why a reset token was rejected.

    NOT_FOUND and INVALID are never distinguished towards users.
    EXPIRED and ALREADY_USED may get their own wording.
    """

    NOT_FOUND = "not_found"
    INVALID = "invalid"
    EXPIRED = "expired"
    ALREADY_USED = "already_used"


class ResetRequestOutcome(enum.Enum):
    """What a reset request actually did. Internal only, never shown to users."""

    SENT = "sent"
    UNKNOWN_EMAIL = "unknown_email"
    RATE_LIMITED = "rate_limited"
    EMAIL_FAILED = "email_failed"
