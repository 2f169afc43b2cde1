"""
Security Utilities Module for WebGuard AI

- Scan id validation for the stored-scan endpoints
- Audit trail of logins and stored-scan access
"""

import os
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


# ============================================================================
# INPUT VALIDATION
# ============================================================================

def validate_uuid(value: str, field_name: str = "ID") -> str:
    """
    Reject anything that is not a UUID before it reaches a query.

    Raises:
        ValueError: If the value is not a valid UUID

    Example:
        >>> validate_uuid("123e4567-e89b-12d3-a456-426614174000")
        '123e4567-e89b-12d3-a456-426614174000'
    """
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        raise ValueError(f"Invalid {field_name} format. Must be a valid UUID.")
    return value


# ============================================================================
# AUDIT LOGGING
# ============================================================================

class AuditLogger:
    """
    Append-only audit trail, one JSON object per line.

    Events:
    - AUTH_SUCCESS / AUTH_FAILURE: bearer token checks
    - SCAN_STORED: a scan result was persisted
    - SCAN_READ / SCAN_ACCESS_DENIED: stored scan lookups
    """

    def __init__(self, log_file: Optional[str] = None):
        self.logger = logging.getLogger("webguard.audit")
        self.logger.propagate = False

        if not self.logger.handlers:
            handler = logging.FileHandler(log_file or os.getenv("AUDIT_LOG_FILE", "audit.log"))
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def log_event(self, event_type: str, status: str, **fields):
        """
        Write one audit line. Fields that are None are left out.

        Args:
            event_type: AUTH_SUCCESS, SCAN_READ, ...
            status: SUCCESS, FAILURE or DENIED
            **fields: user_id, ip_address, scan_id, details, ...
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "status": status,
        }
        entry.update({k: v for k, v in fields.items() if v is not None})

        self.logger.info(json.dumps(entry))

    def log_auth_success(self, user_id: str, ip_address: Optional[str] = None):
        self.log_event("AUTH_SUCCESS", "SUCCESS", user_id=user_id, ip_address=ip_address)

    def log_auth_failure(self, reason: str, ip_address: Optional[str] = None):
        self.log_event("AUTH_FAILURE", "FAILURE", ip_address=ip_address, details={"reason": reason})

    def log_scan_stored(self, scan_id: str, url: str, user_id: Optional[str] = None):
        self.log_event("SCAN_STORED", "SUCCESS", scan_id=scan_id, url=url, user_id=user_id)

    def log_scan_read(self, user_id: str, scan_id: str, ip_address: Optional[str] = None):
        self.log_event("SCAN_READ", "SUCCESS", user_id=user_id, scan_id=scan_id, ip_address=ip_address)

    def log_scan_denied(
        self,
        user_id: str,
        scan_id: str,
        owner_id: str,
        ip_address: Optional[str] = None
    ):
        """Someone asked for a scan owned by another user."""
        self.log_event(
            "SCAN_ACCESS_DENIED",
            "DENIED",
            user_id=user_id,
            scan_id=scan_id,
            ip_address=ip_address,
            details={"owner_id": owner_id},
        )


audit_logger = AuditLogger()
