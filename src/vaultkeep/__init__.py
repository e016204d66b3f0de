# Vaultkeep - Main Package
#
# Personal credential vault core: per-item secrets encrypted at rest,
# decrypted for display, sensitive actions gated behind an item PIN.

__version__ = "0.1.0"
__author__ = "Vaultkeep Team"
__description__ = "Encryption and PIN-verification core for a personal credential vault"

from .core import (
    EventSeverity,
    EventType,
    VaultSettings,
    get_audit_logger,
    get_settings,
)
from .vault import (
    DecryptionError,
    EncryptionError,
    ConfigurationError,
    VaultCrypto,
    VaultItemService,
)

__all__ = [
    "__version__",
    "VaultCrypto",
    "VaultItemService",
    "VaultSettings",
    "get_settings",
    "EncryptionError",
    "DecryptionError",
    "ConfigurationError",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
]
