"""Activity logging service for audit trail."""
import logging
from typing import Any, Dict, Optional

from authcore.utils.clock import utcnow

logger = logging.getLogger(__name__)


class ActivityLogger:
    """
    Service for logging user and system activities.

    Provides audit trail for security-sensitive operations. Entries go to
    the ``authcore.services.activity_logger`` logger with the entry fields
    attached as ``extra``.
    """

    def log(
        self,
        action: str,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log an activity.

        Args:
            action: Action identifier (e.g., "password_reset_requested")
            user_id: Optional user ID associated with the action
            metadata: Optional additional data to log
        """
        log_entry = {
            "timestamp": utcnow().isoformat(),
            "action": action,
            "user_id": user_id,
            "metadata": metadata or {}
        }

        logger.info(f"Activity: {action}", extra={"activity": log_entry})

    def log_security_event(
        self,
        event_type: str,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log a security-related event.

        Args:
            event_type: Type of security event
            user_id: User ID if applicable
            ip_address: IP address of the request
            details: Additional event details
        """
        metadata = {
            "ip": ip_address,
            "event_type": event_type,
            **(details or {})
        }

        self.log(
            action=f"security.{event_type}",
            user_id=user_id,
            metadata=metadata
        )
