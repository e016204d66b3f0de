# Vault Module - Encrypted Credential Storage
#
# Per-item passwords and PINs encrypted at rest (AES-256, OpenSSL envelope)
# PIN gate for viewing, copying, editing and deleting protected items

from .encryption import VaultCrypto
from .exceptions import (
    ConfigurationError,
    DecryptionError,
    EncryptionError,
    IncorrectPinError,
    ItemNotFoundError,
    ItemValidationError,
    NoPinSetError,
    PinRequiredError,
    VaultCryptoError,
    VaultError,
)
from .items import Category, GatedAction, VaultItem
from .stored_secret import EncryptedSecret, LegacyPlaintext, StoredSecret
from .vault_manager import ItemPage, ItemView, VaultItemService

__all__ = [
    "VaultCrypto",
    "VaultItemService",
    "VaultItem",
    "ItemView",
    "ItemPage",
    "Category",
    "GatedAction",
    "StoredSecret",
    "EncryptedSecret",
    "LegacyPlaintext",
    # Errors
    "VaultError",
    "VaultCryptoError",
    "EncryptionError",
    "DecryptionError",
    "ConfigurationError",
    "ItemValidationError",
    "ItemNotFoundError",
    "PinRequiredError",
    "IncorrectPinError",
    "NoPinSetError",
]
