"""Password reset token repository."""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, case, func, or_

from authcore.models.password_reset_token import PasswordResetToken
from authcore.repositories.base import BaseRepository


@dataclass
class TokenCounts:
    """Row counts by token state."""

    active: int
    used: int
    expired: int
    total: int


class PasswordResetRepository(BaseRepository[PasswordResetToken]):
    """Repository for password reset token operations."""

    def __init__(self, session):
        """Initialize repository with database session."""
        super().__init__(session, PasswordResetToken)

    def create_token(
        self,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
    ) -> PasswordResetToken:
        """
        Create a new password reset token.

        Args:
            user_id: UUID of the user requesting reset
            token_hash: scrypt ``salt:hash`` of the plaintext token
            expires_at: Token expiration datetime
            created_at: Creation time, defaults to now

        Returns:
            Created PasswordResetToken
        """
        reset_token = PasswordResetToken()
        reset_token.user_id = user_id
        reset_token.token_hash = token_hash
        reset_token.expires_at = expires_at
        if created_at is not None:
            reset_token.created_at = created_at
            reset_token.updated_at = created_at

        self._session.add(reset_token)
        self._session.commit()

        return reset_token

    def find_active(self, now: datetime, limit: int = 100) -> List[PasswordResetToken]:
        """
        Find unused, unexpired tokens, newest first.

        Args:
            now: Reference time
            limit: Maximum number of rows returned

        Returns:
            List of active PasswordResetToken rows
        """
        return (
            self._session.query(PasswordResetToken)
            .filter(
                PasswordResetToken.used_at.is_(None),
                PasswordResetToken.expires_at > now,
            )
            .order_by(PasswordResetToken.created_at.desc())
            .limit(limit)
            .all()
        )

    def find_retired_since(
        self, now: datetime, since: datetime, limit: int = 100
    ) -> List[PasswordResetToken]:
        """
        Find tokens that stopped being valid after ``since``.

        Covers tokens used after ``since`` and unused tokens whose expiry
        falls between ``since`` and ``now``. Newest first.
        """
        used_recently = and_(
            PasswordResetToken.used_at.isnot(None),
            PasswordResetToken.used_at > since,
        )
        expired_recently = and_(
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.expires_at <= now,
            PasswordResetToken.expires_at > since,
        )
        return (
            self._session.query(PasswordResetToken)
            .filter(or_(used_recently, expired_recently))
            .order_by(PasswordResetToken.created_at.desc())
            .limit(limit)
            .all()
        )

    def find_recent_for_user(
        self, user_id: UUID, since: datetime
    ) -> Optional[PasswordResetToken]:
        """
        Find the newest token created for a user after ``since``.

        Used for the per-user request rate limit.
        """
        return (
            self._session.query(PasswordResetToken)
            .filter(
                PasswordResetToken.user_id == user_id,
                PasswordResetToken.created_at > since,
            )
            .order_by(PasswordResetToken.created_at.desc())
            .first()
        )

    def find_by_user(self, user_id: UUID) -> List[PasswordResetToken]:
        """Find all tokens of a user (active, used and expired), newest first."""
        return (
            self._session.query(PasswordResetToken)
            .filter(PasswordResetToken.user_id == user_id)
            .order_by(PasswordResetToken.created_at.desc())
            .all()
        )

    def mark_used(self, token_id: UUID, now: datetime) -> bool:
        """
        Mark a token as used.

        Single conditional UPDATE guarded by ``used_at IS NULL``, so of two
        concurrent callers only the first one gets a row back.

        Args:
            token_id: UUID of the token
            now: Consumption time

        Returns:
            True if this call consumed the token, False if it was not found
            or already used
        """
        count = (
            self._session.query(PasswordResetToken)
            .filter(
                PasswordResetToken.id == token_id,
                PasswordResetToken.used_at.is_(None),
            )
            .update(
                {
                    PasswordResetToken.used_at: now,
                    PasswordResetToken.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self._session.commit()
        return count == 1

    def invalidate_tokens_for_user(
        self, user_id: UUID, now: datetime, exclude_id: Optional[UUID] = None
    ) -> int:
        """
        Soft-expire all currently valid tokens of a user.

        Rows are kept; ``expires_at`` is moved to ``now``.

        Args:
            user_id: UUID of the user
            now: Reference time, becomes the new expiry
            exclude_id: Token left untouched

        Returns:
            Number of tokens invalidated
        """
        query = self._session.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user_id,
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.expires_at > now,
        )
        if exclude_id is not None:
            query = query.filter(PasswordResetToken.id != exclude_id)

        count = query.update(
            {
                PasswordResetToken.expires_at: now,
                PasswordResetToken.updated_at: now,
            },
            synchronize_session=False,
        )
        self._session.commit()
        return count

    def delete_for_user(self, user_id: UUID) -> int:
        """Delete every token of a user. Returns number of rows deleted."""
        count = (
            self._session.query(PasswordResetToken)
            .filter(PasswordResetToken.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self._session.commit()
        return count

    def delete_expired_before(self, cutoff: datetime) -> int:
        """
        Delete tokens that expired before ``cutoff``.

        Args:
            cutoff: Rows with expires_at < cutoff are removed

        Returns:
            Number of tokens deleted
        """
        count = (
            self._session.query(PasswordResetToken)
            .filter(PasswordResetToken.expires_at < cutoff)
            .delete(synchronize_session=False)
        )

        self._session.commit()
        return count

    def count_stats(self, now: datetime) -> TokenCounts:
        """Count tokens per state in a single query."""
        used = PasswordResetToken.used_at.isnot(None)
        unused = PasswordResetToken.used_at.is_(None)

        row = self._session.query(
            func.count(case((unused & (PasswordResetToken.expires_at > now), 1))),
            func.count(case((used, 1))),
            func.count(case((unused & (PasswordResetToken.expires_at <= now), 1))),
            func.count(PasswordResetToken.id),
        ).one()

        return TokenCounts(
            active=row[0] or 0,
            used=row[1] or 0,
            expired=row[2] or 0,
            total=row[3] or 0,
        )
