"""Password hashing, verification and legacy hash migration."""
import logging
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

import bcrypt

from authcore.repositories.user_repository import UserRepository
from authcore.services.scrypt_hasher import ScryptHasher, SEPARATOR

logger = logging.getLogger(__name__)

LEGACY_PREFIXES = ("$2a$", "$2b$", "$2y$")

# bcrypt only ever hashed the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

# Salt used for the throwaway derivation when no account matches
_DUMMY_SALT = "0" * 32


@dataclass(frozen=True)
class LegacyHash:
    """bcrypt hash inherited from the previous auth system."""

    value: str


@dataclass(frozen=True)
class CanonicalHash:
    """scrypt ``salt:hash`` hash."""

    salt: str
    digest: str

    @property
    def value(self) -> str:
        return f"{self.salt}{SEPARATOR}{self.digest}"


PasswordHash = Union[LegacyHash, CanonicalHash]


def parse_password_hash(stored: Optional[str]) -> Optional[PasswordHash]:
    """
    Classify a stored hash by its shape.

    Returns:
        LegacyHash, CanonicalHash, or None for anything unrecognised
    """
    if not stored or not isinstance(stored, str):
        return None

    if stored.startswith(LEGACY_PREFIXES):
        return LegacyHash(stored)

    parts = stored.split(SEPARATOR)
    if len(parts) == 2 and all(parts):
        return CanonicalHash(salt=parts[0], digest=parts[1])

    return None


@dataclass
class LoginResult:
    """Result of a credential check at login."""

    success: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    user: Optional[object] = None
    rehashed: bool = False
    error: Optional[str] = None


class CredentialVerifier:
    """
    Verifies passwords against legacy (bcrypt) or canonical (scrypt) hashes.

    A successful login against a legacy hash migrates the account to the
    canonical format. The migration is one way; canonical hashes are never
    touched again.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        hasher: ScryptHasher,
        activity_logger=None,
    ):
        """
        Initialize verifier.

        Args:
            user_repository: User store (lookup and password hash updates)
            hasher: scrypt hasher for canonical hashes
            activity_logger: Optional audit logger
        """
        self._user_repo = user_repository
        self._hasher = hasher
        self._activity_logger = activity_logger

    def hash_password(self, password: str) -> str:
        """Hash a plaintext password into the canonical format."""
        return self._hasher.hash(password)

    def verify_password(self, password: str, stored_hash: Optional[str]) -> bool:
        """
        Verify a password against a stored hash of either format.

        Returns False for wrong passwords and for malformed hashes alike;
        nothing is raised.
        """
        parsed = parse_password_hash(stored_hash)

        if isinstance(parsed, LegacyHash):
            return self._verify_legacy(password, parsed)
        if isinstance(parsed, CanonicalHash):
            return self._hasher.verify(password, parsed.value)

        # Same cost as a real check, so a broken hash does not answer faster
        if isinstance(password, str):
            self._hasher.derive(password, _DUMMY_SALT)
        return False

    def needs_rehash(self, stored_hash: Optional[str]) -> bool:
        """True when the stored hash is in the legacy format."""
        return isinstance(parse_password_hash(stored_hash), LegacyHash)

    def rehash_if_needed(
        self, user_id: UUID, password: str, current_hash: Optional[str]
    ) -> bool:
        """
        Migrate a legacy hash to the canonical format.

        Does not verify the password again: only call this after
        ``verify_password(password, current_hash)`` succeeded.

        Returns:
            True if a new hash was persisted
        """
        if not self.needs_rehash(current_hash):
            return False

        new_hash = self.hash_password(password)
        updated = self._user_repo.update_password_hash(user_id, new_hash)

        if updated:
            logger.info("Migrated legacy password hash for user %s", user_id)
            if self._activity_logger:
                self._activity_logger.log(
                    action="password_rehashed", user_id=str(user_id)
                )
        return updated

    def authenticate(self, email: str, password: str) -> LoginResult:
        """
        Check login credentials and migrate legacy hashes on success.

        Unknown email, passwordless account and wrong password all produce
        the same failure.
        """
        user = self._user_repo.find_by_email(email.strip().lower())

        if not user or not user.password_hash:
            # Spend a derivation anyway so response time does not reveal the account
            self._hasher.derive(password, _DUMMY_SALT)
            return self._login_failed()

        if not self.verify_password(password, user.password_hash):
            return self._login_failed(user_id=str(user.id))

        rehashed = False
        try:
            rehashed = self.rehash_if_needed(user.id, password, user.password_hash)
        except Exception:
            # Migration is retried on the next login
            logger.exception("Password rehash failed for user %s", user.id)

        return LoginResult(
            success=True,
            user_id=str(user.id),
            email=user.email,
            user=user,
            rehashed=rehashed,
        )

    def _verify_legacy(self, password: str, parsed: LegacyHash) -> bool:
        try:
            # checkpw compares in constant time
            return bcrypt.checkpw(
                password.encode("utf-8")[:BCRYPT_MAX_BYTES],
                parsed.value.encode("utf-8"),
            )
        except (ValueError, TypeError, UnicodeError):
            return False

    def _login_failed(self, user_id: Optional[str] = None) -> LoginResult:
        if self._activity_logger:
            self._activity_logger.log(
                action="login_failed",
                user_id=user_id,
                metadata={"reason": "invalid_credentials"},
            )
        return LoginResult(success=False, error="Invalid email or password")
