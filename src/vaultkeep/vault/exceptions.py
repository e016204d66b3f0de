"""
Vault Exception Classes
"""

from typing import List, Optional


class VaultError(Exception):
    """Base exception for vault operations"""
    pass


class ConfigurationError(VaultError):
    """Raised when the encryption key is missing or unusable"""
    pass


class VaultCryptoError(VaultError):
    """Base exception for encryption and decryption failures"""
    pass


class EncryptionError(VaultCryptoError):
    """Raised when a plaintext cannot be encrypted; nothing must be persisted"""
    pass


class DecryptionError(VaultCryptoError):
    """Raised when an envelope does not decode under the current key"""
    pass


class ItemValidationError(VaultError):
    """Raised when submitted item fields fail validation"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Validation failed: " + "; ".join(self.errors))


class ItemNotFoundError(VaultError):
    """Raised when an item does not exist, is deleted, or belongs to another user"""
    pass


class PinRequiredError(VaultError):
    """Raised when a gated action is attempted without a PIN"""

    def __init__(self, item_id: str, action: Optional[str] = None):
        self.item_id = item_id
        self.action = action
        super().__init__(f"PIN required to {action or 'access'} item {item_id}")


class IncorrectPinError(VaultError):
    """Raised when the supplied PIN does not match the item's PIN"""
    pass


class NoPinSetError(VaultError):
    """Raised when verifying a PIN on an item that has none"""
    pass
