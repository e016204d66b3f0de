# Vaultkeep - Audit Logging
#
# Append-only audit trail for vault activity.
# Every item access, PIN check and legacy-plaintext fallback is recorded
# with a timestamp and user context. Secret values are never logged.

import logging
import os
import socket
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog


class EventType(str, Enum):
    """Types of vault events that can be logged."""

    # Item lifecycle
    VAULT_ITEM_CREATED = "vault.item.created"
    VAULT_ITEM_UPDATED = "vault.item.updated"
    VAULT_ITEM_ACCESSED = "vault.item.accessed"
    VAULT_ITEM_DELETED = "vault.item.deleted"

    # PIN gate
    VAULT_PIN_VERIFIED = "vault.pin.verified"
    VAULT_PIN_FAILED = "vault.pin.failed"

    # Crypto
    VAULT_LEGACY_PLAINTEXT = "vault.legacy.plaintext"
    VAULT_CRYPTO_ERROR = "vault.crypto.error"

    # Configuration / system
    CONFIG_INSECURE_DEFAULT_KEY = "config.insecure_default_key"
    SYSTEM_START = "system.start"


class EventSeverity(str, Enum):
    """
    Severity levels for vault events.

    - INFO: Normal activity, logged only
    - INVESTIGATE: Something unusual worth a look (legacy data, bad PIN)
    - ALERT: Security posture is degraded (insecure default key)
    - CRITICAL: An operation failed and data was not written
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only audit logger for vault events.

    Features:
    - Structured JSON logging (structlog)
    - Automatic timestamp and event ID
    - User and host context capture
    - Daily log files under ``log_dir``
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: ./audit_logs)
        """
        self.log_dir = Path(log_dir) if log_dir else Path("./audit_logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._setup_file_handler()

        self.logger = structlog.get_logger("vaultkeep.audit")

    def _setup_file_handler(self):
        """Attach a file handler for today's log to the audit logger."""
        today = datetime.now().strftime("%Y-%m-%d")
        self.log_file = self.log_dir / f"audit_{today}.log"

        file_handler = logging.FileHandler(self.log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))  # structlog formats

        audit_logger = logging.getLogger("vaultkeep.audit")
        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)
        self._file_handler = file_handler

    def close(self):
        """Detach and close the file handler."""
        logging.getLogger("vaultkeep.audit").removeHandler(self._file_handler)
        self._file_handler.close()

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log a vault event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secret values)
            user_context: User context (user_id, etc.)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.utcnow().isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.info("vault_event", **event_data)

        return event_id

    def log_vault_event(
        self,
        event_type: EventType,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> str:
        """
        Log an INFO-level vault event.

        Args:
            event_type: Type of Vault event
            message: Event description
            details: Additional details (never log actual passwords or PINs!)
            user_id: Owner of the item, when known
        """
        user_context = {"user_id": user_id} if user_id is not None else None
        return self.log_event(
            event_type=event_type,
            severity=EventSeverity.INFO,
            message=f"Vault: {message}",
            details=details,
            user_context=user_context,
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        """Get default user context (OS user, hostname, etc.)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger
