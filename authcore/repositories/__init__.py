"""Repository implementations."""
from authcore.repositories.base import BaseRepository
from authcore.repositories.user_repository import UserRepository
from authcore.repositories.password_reset_repository import (
    PasswordResetRepository,
    TokenCounts,
)

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PasswordResetRepository",
    "TokenCounts",
]
