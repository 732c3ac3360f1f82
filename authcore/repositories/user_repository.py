"""User repository implementation."""
from typing import Optional
from uuid import UUID

from sqlalchemy import func

from authcore.repositories.base import BaseRepository
from authcore.models import User
from authcore.utils.clock import utcnow


class UserRepository(BaseRepository[User]):
    """Repository for User entity operations."""

    def __init__(self, session):
        super().__init__(session=session, model=User)

    def find_by_email(self, email: str) -> Optional[User]:
        """Find user by email address, ignoring case."""
        return (
            self._session.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    def update_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        """
        Replace the stored password hash of a user.

        Args:
            user_id: UUID of the user
            password_hash: New hash (canonical scrypt format)

        Returns:
            True if a user row was updated, False if the user does not exist
        """
        count = (
            self._session.query(User)
            .filter(User.id == user_id)
            .update(
                {
                    User.password_hash: password_hash,
                    User.updated_at: utcnow(),
                    User.version: User.version + 1,
                },
                synchronize_session="fetch",
            )
        )
        self._session.commit()
        return count > 0
