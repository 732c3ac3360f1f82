"""Password reset token lifecycle."""
import base64
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlencode
from uuid import UUID

from authcore.models.enums import ResetRequestOutcome, TokenFailureReason
from authcore.models.password_reset_token import PasswordResetToken
from authcore.repositories.password_reset_repository import (
    PasswordResetRepository,
    TokenCounts,
)
from authcore.repositories.user_repository import UserRepository
from authcore.services.credential_verifier import CredentialVerifier
from authcore.services.scrypt_hasher import ScryptHasher
from authcore.utils.clock import utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
RESET_PATH = "/auth/reset-password"
# Consumed and expired tokens stay around this long before the sweep deletes them
RETENTION = timedelta(hours=24)


@dataclass
class GeneratedToken:
    """Plaintext token (mailed once) and the hash that gets stored."""

    token: str
    token_hash: str


@dataclass
class ResetRequestResult:
    """
    Result of password reset request.

    ``success`` is always True; ``outcome`` is for logging and tests only
    and must not reach the client.
    """

    success: bool
    outcome: ResetRequestOutcome
    user_id: Optional[str] = None
    expires_at: Optional[datetime] = None


@dataclass
class TokenVerification:
    """Result of checking a plaintext token against the active tokens."""

    valid: bool
    expires_at: Optional[datetime] = None
    failure_reason: Optional[TokenFailureReason] = None
    token_record: Optional[PasswordResetToken] = None
    scanned: int = 0


@dataclass
class ResetResult:
    """Result of password reset execution."""

    success: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    error: Optional[str] = None
    failure_reason: Optional[TokenFailureReason] = None


FAILURE_MESSAGES = {
    TokenFailureReason.NOT_FOUND: "Invalid token",
    TokenFailureReason.INVALID: "Invalid token",
    TokenFailureReason.EXPIRED: "Token expired",
    TokenFailureReason.ALREADY_USED: "Token already used",
}


class PasswordResetService:
    """
    Password reset business logic.

    Issues single-use, time-limited tokens, stores only their scrypt hash,
    and exchanges a valid token for a new password. All state lives in the
    repositories; concurrent consumers are arbitrated by the conditional
    update in ``PasswordResetRepository.mark_used``.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        reset_repository: PasswordResetRepository,
        credential_verifier: CredentialVerifier,
        email_service,
        hasher: ScryptHasher,
        activity_logger=None,
        reset_url_base: str = "http://localhost:3000",
        token_ttl_seconds: int = 3600,
        rate_limit_seconds: int = 300,
        scan_limit: int = 100,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize service with repositories and collaborators.

        Args:
            user_repository: Repository for user data access
            reset_repository: Repository for password reset tokens
            credential_verifier: Hashes the new password
            email_service: Sends the reset link
            hasher: scrypt hasher for token hashes
            activity_logger: Optional audit logger
            reset_url_base: Public site URL the reset path is appended to
            token_ttl_seconds: Token lifetime
            rate_limit_seconds: Minimum delay between two requests of a user
            scan_limit: Maximum number of stored tokens compared per check,
                active and retired together
            clock: Returns the current naive UTC time
        """
        self._user_repo = user_repository
        self._reset_repo = reset_repository
        self._credentials = credential_verifier
        self._email_service = email_service
        self._hasher = hasher
        self._activity_logger = activity_logger
        self._reset_url_base = reset_url_base.rstrip("/")
        self._token_ttl = timedelta(seconds=token_ttl_seconds)
        self._rate_limit_window = timedelta(seconds=rate_limit_seconds)
        self._scan_limit = scan_limit
        self._clock = clock

    # ------------------------------------------------------------------
    # Token generation
    # ------------------------------------------------------------------

    def generate_token(self) -> GeneratedToken:
        """
        Generate a new reset token.

        Returns:
            43 character base64url token (256 bits) and its ``salt:hash``
        """
        raw = secrets.token_bytes(TOKEN_BYTES)
        token = base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")
        return GeneratedToken(token=token, token_hash=self._hasher.hash(token))

    def build_reset_url(self, token: str) -> str:
        """Reset link as mailed to the user; ``token`` is the query parameter."""
        return f"{self._reset_url_base}{RESET_PATH}?{urlencode({'token': token})}"

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    def request_reset(
        self, email: str, request_ip: Optional[str] = None
    ) -> ResetRequestResult:
        """
        Issue a reset token for the account behind ``email`` and mail it.

        The result looks the same to callers whether the email is unknown,
        the user is rate limited, or the mail could not be delivered.

        Args:
            email: Email address entered by the user
            request_ip: Client address, for the audit log

        Returns:
            ResetRequestResult (always success=True)
        """
        normalized = (email or "").strip().lower()
        user = self._user_repo.find_by_email(normalized)

        if not user:
            logger.info("Password reset requested for unknown email")
            return ResetRequestResult(
                success=True, outcome=ResetRequestOutcome.UNKNOWN_EMAIL
            )

        now = self._clock()
        recent = self._reset_repo.find_recent_for_user(
            user.id, now - self._rate_limit_window
        )
        if recent:
            logger.info("Password reset rate limit hit for user %s", user.id)
            self._log_activity(
                "password_reset_rate_limited", user.id, {"ip": request_ip}
            )
            return ResetRequestResult(
                success=True,
                outcome=ResetRequestOutcome.RATE_LIMITED,
                user_id=str(user.id),
            )

        # Old tokens go first so that only the new one is usable
        invalidated = self._reset_repo.invalidate_tokens_for_user(user.id, now)
        if invalidated:
            logger.info("Invalidated %d previous reset token(s) for user %s",
                        invalidated, user.id)

        generated = self.generate_token()
        expires_at = now + self._token_ttl
        record = self._reset_repo.create_token(
            user_id=user.id,
            token_hash=generated.token_hash,
            expires_at=expires_at,
            created_at=now,
        )
        logger.info("Reset token %s created for user %s", record.id, user.id)

        sent = self._send_reset_email(user, generated.token)
        self._log_activity(
            "password_reset_requested",
            user.id,
            {"ip": request_ip, "email_sent": sent},
        )

        return ResetRequestResult(
            success=True,
            outcome=ResetRequestOutcome.SENT if sent else ResetRequestOutcome.EMAIL_FAILED,
            user_id=str(user.id),
            expires_at=expires_at,
        )

    def _send_reset_email(self, user, token: str) -> bool:
        """Mail the reset link. Failures are logged, never raised."""
        reset_url = self.build_reset_url(token)
        try:
            result = self._email_service.send_password_reset(
                to_email=user.email,
                reset_url=reset_url,
                expires_in=_describe_duration(self._token_ttl),
            )
        except Exception:
            logger.exception("Password reset email failed for user %s", user.id)
            return False

        if not result.success:
            logger.error("Password reset email failed for user %s: %s",
                         user.id, result.error)
            return False
        return True

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_token(self, token: str) -> TokenVerification:
        """
        Find the active token record matching a plaintext token.

        Args:
            token: Plaintext token from the reset link

        Returns:
            TokenVerification; failure_reason is NOT_FOUND when there is no
            active token at all and INVALID when none of them matches
        """
        now = self._clock()
        candidates = self._reset_repo.find_active(now, limit=self._scan_limit)

        if not candidates:
            return TokenVerification(
                valid=False, failure_reason=TokenFailureReason.NOT_FOUND
            )

        matched = self._scan(token, candidates)
        if matched is None:
            return TokenVerification(
                valid=False,
                failure_reason=TokenFailureReason.INVALID,
                scanned=len(candidates),
            )

        return TokenVerification(
            valid=True,
            expires_at=matched.expires_at,
            token_record=matched,
            scanned=len(candidates),
        )

    def _scan(
        self, token: str, records: Iterable[PasswordResetToken]
    ) -> Optional[PasswordResetToken]:
        """
        Compare ``token`` against every record and return the first match.

        Every record is hashed and compared even after a match. Returning
        early would make the response time reveal where the match sits.
        """
        if not isinstance(token, str):
            token = ""

        matched = None
        for record in records:
            if self._hasher.verify(token, record.token_hash) and matched is None:
                matched = record
        return matched

    def inspect_token_state(
        self, record: PasswordResetToken, now: Optional[datetime] = None
    ) -> Optional[TokenFailureReason]:
        """
        Classify a token record.

        Returns:
            ALREADY_USED, EXPIRED, or None when the record is still valid
        """
        if record.is_used:
            return TokenFailureReason.ALREADY_USED
        if record.is_expired(now or self._clock()):
            return TokenFailureReason.EXPIRED
        return None

    def _explain_failure(
        self, token: str, verification: TokenVerification
    ) -> TokenFailureReason:
        """
        Refine a failed verification by looking at recently retired tokens.

        Lets a second submission of a consumed link report ALREADY_USED
        instead of a generic INVALID. Shares the scan limit with the active
        scan, so a failed reset never costs more derivations than one full
        check.
        """
        reason = verification.failure_reason or TokenFailureReason.INVALID
        budget = self._scan_limit - verification.scanned
        if budget <= 0:
            return reason

        now = self._clock()
        retired = self._reset_repo.find_retired_since(
            now, now - RETENTION, limit=budget
        )
        matched = self._scan(token, retired)
        if matched is None:
            return reason
        return self.inspect_token_state(matched, now) or TokenFailureReason.INVALID

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    def reset_password(
        self, token: str, new_password: str, reset_ip: Optional[str] = None
    ) -> ResetResult:
        """
        Reset password using token.

        Args:
            token: Plaintext password reset token
            new_password: New password to set
            reset_ip: Client address, for the audit log

        Returns:
            ResetResult with success/failure and user info
        """
        verification = self.verify_token(token)

        if not verification.valid:
            reason = self._explain_failure(token, verification)
            return self._reset_failed(reason, token, reset_ip)

        record = verification.token_record
        user = self._user_repo.find_by_id(record.user_id)
        if not user:
            logger.error("Reset token %s belongs to missing user %s",
                         record.id, record.user_id)
            return self._reset_failed(TokenFailureReason.INVALID, token, reset_ip)

        new_hash = self._credentials.hash_password(new_password)
        result = self.consume_token(record, new_hash)

        if not result.success:
            return self._reset_failed(result.failure_reason, token, reset_ip)

        self._log_activity("password_reset_completed", user.id, {"ip": reset_ip})
        self._send_password_changed(user)
        return result

    def consume_token(
        self, record: PasswordResetToken, new_password_hash: str
    ) -> ResetResult:
        """
        Spend a matched token and store the new password hash.

        Order is fixed: mark used, update password, invalidate the user's
        other tokens. Once the token is marked used it stays burnt even if
        a later step raises.

        Args:
            record: Token record returned by ``verify_token``
            new_password_hash: Canonical hash of the new password

        Returns:
            ResetResult; ALREADY_USED when another request consumed it first
        """
        token_id = record.id
        user_id = record.user_id
        now = self._clock()

        if not self._reset_repo.mark_used(token_id, now):
            return ResetResult(
                success=False,
                error=FAILURE_MESSAGES[TokenFailureReason.ALREADY_USED],
                failure_reason=TokenFailureReason.ALREADY_USED,
            )

        if not self._user_repo.update_password_hash(user_id, new_password_hash):
            logger.error("Password update failed, user %s is gone", user_id)
            return ResetResult(
                success=False,
                error=FAILURE_MESSAGES[TokenFailureReason.INVALID],
                failure_reason=TokenFailureReason.INVALID,
            )

        invalidated = self._reset_repo.invalidate_tokens_for_user(
            user_id, now, exclude_id=token_id
        )
        logger.info("Password reset for user %s, %d other token(s) invalidated",
                    user_id, invalidated)

        user = self._user_repo.find_by_id(user_id)
        return ResetResult(
            success=True,
            user_id=str(user_id),
            email=user.email if user else None,
        )

    def _reset_failed(
        self, reason: TokenFailureReason, token: str, reset_ip: Optional[str]
    ) -> ResetResult:
        if self._activity_logger:
            self._activity_logger.log_security_event(
                "password_reset_failed",
                ip_address=reset_ip,
                details={
                    "reason": reason.value,
                    "token_prefix": _token_prefix(token),
                },
            )
        return ResetResult(
            success=False, error=FAILURE_MESSAGES[reason], failure_reason=reason
        )

    def _send_password_changed(self, user) -> None:
        try:
            result = self._email_service.send_password_changed(to_email=user.email)
        except Exception:
            logger.exception("Password changed notice failed for user %s", user.id)
            return
        if not result.success:
            logger.warning("Password changed notice failed for user %s: %s",
                           user.id, result.error)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def invalidate_user_tokens(self, user_id: UUID) -> int:
        """Soft-expire every valid token of a user."""
        return self._reset_repo.invalidate_tokens_for_user(user_id, self._clock())

    def list_user_tokens(self, user_id: UUID) -> List[PasswordResetToken]:
        """All tokens of a user, newest first."""
        return self._reset_repo.find_by_user(user_id)

    def delete_user_tokens(self, user_id: UUID) -> int:
        """Remove every token of a user, e.g. when the account is deleted."""
        return self._reset_repo.delete_for_user(user_id)

    def cleanup_expired(self) -> int:
        """
        Delete tokens that expired more than 24 hours ago.

        Only bounds table growth; validity never depends on it.
        """
        deleted = self._reset_repo.delete_expired_before(self._clock() - RETENTION)
        logger.info("Deleted %d expired reset token(s)", deleted)
        return deleted

    def get_stats(self) -> TokenCounts:
        """Count tokens by state (active, used, expired)."""
        return self._reset_repo.count_stats(self._clock())

    def _log_activity(self, action: str, user_id, metadata: dict) -> None:
        if self._activity_logger:
            self._activity_logger.log(
                action=action, user_id=str(user_id), metadata=metadata
            )


def _token_prefix(token) -> str:
    if not isinstance(token, str):
        return ""
    return token[:8] + "..." if len(token) > 8 else token


def _describe_duration(delta: timedelta) -> str:
    minutes = int(delta.total_seconds() // 60)
    if minutes and minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"
