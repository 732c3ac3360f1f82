"""User domain model."""
from authcore.extensions import db
from authcore.models.base import BaseModel
from authcore.models.enums import UserStatus, UserRole


class User(BaseModel):
    """
    User account model.

    ``password_hash`` holds either a legacy bcrypt hash or a canonical
    scrypt ``salt:hash`` string. It is empty for accounts created through
    an OAuth provider.
    """

    __tablename__ = "user"

    email = db.Column(
        db.String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(255), nullable=True)
    password_hash = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.Enum(UserStatus),
        nullable=False,
        default=UserStatus.ACTIVE,
        index=True,
    )
    role = db.Column(
        db.Enum(UserRole),
        nullable=False,
        default=UserRole.USER,
    )

    reset_tokens = db.relationship(
        "PasswordResetToken",
        backref="user",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        """Check if user account is active."""
        return self.status == UserStatus.ACTIVE

    def to_dict(self) -> dict:
        """
        Convert to dictionary, excluding sensitive data.

        Returns:
            Dictionary without the password hash.
        """
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "role": self.role.value if self.role else None,
            "status": self.status.value if self.status else None,
        }
