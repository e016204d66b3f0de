# Vault - Encryption Service
#
# One static passphrase -> per-record key (EVP_BytesToKey, fresh salt)
# Secret encryption (AES-256-CBC, OpenSSL envelope)
# PIN verification with the legacy plaintext fallback

import hmac
import logging
from typing import Optional

from . import envelope as envelope_format
from .exceptions import ConfigurationError, DecryptionError, EncryptionError
from .stored_secret import EncryptedSecret, LegacyPlaintext, StoredSecret
from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger

logger = logging.getLogger(__name__)


class VaultCrypto:
    """
    Encrypts and decrypts vault secrets (passwords and PINs).

    Flow:
    1. The key (a passphrase string) is injected at construction
    2. encrypt() draws a fresh salt, derives key + IV, emits an envelope
    3. decrypt() reads the salt back from the envelope and reverses it
    4. verify_pin() gates sensitive item actions

    Envelopes are non-deterministic: never compare two of them to decide
    whether the plaintexts match. Instances hold no mutable state and can be
    shared between threads.
    """

    def __init__(self, key: str, audit_logger: Optional[AuditLogger] = None):
        """
        Args:
            key: Passphrase all envelopes are sealed with
            audit_logger: Where legacy-branch events go (default: global logger)

        Raises:
            ConfigurationError: Key is not a non-empty string
        """
        if not isinstance(key, str) or not key:
            raise ConfigurationError("Encryption key must be a non-empty string")
        try:
            self._passphrase = key.encode('utf-8')
        except UnicodeEncodeError as e:
            raise ConfigurationError(f"Encryption key is not valid UTF-8: {e}") from e
        self._audit_logger = audit_logger

    @classmethod
    def from_settings(cls, settings=None, audit_logger: Optional[AuditLogger] = None) -> "VaultCrypto":
        """Build from ``VaultSettings`` (default: the process-wide settings)."""
        if settings is None:
            from ..core.config import get_settings
            settings = get_settings()
        return cls(settings.encryption_key, audit_logger=audit_logger)

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger or get_audit_logger()

    def encrypt(self, plaintext: str, field: str = "secret") -> str:
        """
        Encrypt a secret into an envelope.

        Args:
            plaintext: Password, PIN or any other string (empty is allowed)
            field: Field name used in error messages

        Returns:
            Base64 envelope, different on every call

        Raises:
            EncryptionError: Input is not a string or cannot be encoded
        """
        if not isinstance(plaintext, str):
            raise EncryptionError(
                f"Failed to encrypt {field}: expected str, got {type(plaintext).__name__}"
            )
        try:
            data = plaintext.encode('utf-8')
            return envelope_format.seal(data, self._passphrase, envelope_format.generate_salt())
        except (UnicodeEncodeError, ValueError, TypeError) as e:
            logger.error("Encryption of %s failed: %s", field, e)
            raise EncryptionError(f"Failed to encrypt {field}") from e

    def decrypt(self, envelope: str, field: str = "secret") -> str:
        """
        Decrypt an envelope produced by encrypt() under the same key.

        The padding and the UTF-8 decoding are both checked, so a returned
        empty string is a genuinely empty secret and never a failed decrypt.

        Raises:
            DecryptionError: Wrong key, corrupted data, or not an envelope
                             (for example legacy plaintext)
        """
        if not isinstance(envelope, str):
            raise DecryptionError(f"Failed to decrypt {field}: not a string")
        try:
            data = envelope_format.open_envelope(envelope, self._passphrase)
        except envelope_format.MalformedEnvelope as e:
            raise DecryptionError(f"Failed to decrypt {field}: {e}") from e
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecryptionError(
                f"Failed to decrypt {field}: invalid key or corrupted data"
            ) from e

    # Per-field entry points. Same cipher and key; only the messages differ.

    def encrypt_password(self, password: str) -> str:
        return self.encrypt(password, field="password")

    def decrypt_password(self, envelope: str) -> str:
        return self.decrypt(envelope, field="password")

    def encrypt_pin(self, pin: str) -> str:
        return self.encrypt(pin, field="PIN")

    def decrypt_pin(self, envelope: str) -> str:
        return self.decrypt(envelope, field="PIN")

    def classify(self, stored: str, field: str = "secret") -> StoredSecret:
        """
        Tag a stored value as encrypted or legacy plaintext.

        A value that decrypts under the current key is EncryptedSecret;
        anything else is assumed to predate encryption.
        """
        if not envelope_format.looks_like_envelope(stored):
            return LegacyPlaintext(raw=stored)
        try:
            return EncryptedSecret(envelope=stored, plaintext=self.decrypt(stored, field=field))
        except DecryptionError:
            return LegacyPlaintext(raw=stored)

    def verify_pin(self, candidate_pin: str, stored_pin: str,
                   item_id: Optional[str] = None) -> bool:
        """
        Check a candidate PIN against the stored (normally encrypted) PIN.

        Never raises. A stored value that does not decrypt is treated as a
        plaintext PIN written before encryption was introduced and compared
        directly; that branch is logged and audited every time it is taken.

        Args:
            candidate_pin: PIN typed by the user
            stored_pin: Envelope, or legacy plaintext PIN
            item_id: Only used for logging

        Returns:
            True if the PIN matches
        """
        if not isinstance(candidate_pin, str) or not isinstance(stored_pin, str):
            return False

        stored = self.classify(stored_pin, field="PIN")

        if isinstance(stored, LegacyPlaintext):
            # Legacy compatibility: stored PIN was never encrypted
            logger.warning(
                "PIN for item %s did not decrypt; comparing against stored value as legacy plaintext",
                item_id or "<unknown>",
            )
            self.audit_logger.log_event(
                event_type=EventType.VAULT_LEGACY_PLAINTEXT,
                severity=EventSeverity.INVESTIGATE,
                message="Legacy plaintext PIN comparison",
                details={"item_id": item_id, "field": "pin"},
            )
            return _same(candidate_pin, stored.raw)

        return _same(candidate_pin, stored.plaintext)


def _same(a: str, b: str) -> bool:
    """Constant-time string equality."""
    try:
        return hmac.compare_digest(a.encode('utf-8'), b.encode('utf-8'))
    except UnicodeEncodeError:
        return a == b
