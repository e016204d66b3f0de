# Core Module - Shared Utilities
#
# - Audit logging
# - Configuration (encryption key)

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
)
from .config import (
    DEFAULT_ENCRYPTION_KEY,
    VaultSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    # Configuration
    "VaultSettings",
    "DEFAULT_ENCRYPTION_KEY",
    "get_settings",
    "reset_settings",
]
