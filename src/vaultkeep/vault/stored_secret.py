# Vault - Stored Secret Variants
#
# A password or PIN read back from storage is one of:
#   EncryptedSecret   - an envelope that decrypts under the current key
#   LegacyPlaintext   - a raw value written before encryption existed
#
# Keeping the legacy case as its own type makes every place that accepts
# unencrypted data visible in code and in the audit log.

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class EncryptedSecret:
    """Envelope plus the plaintext it decrypted to."""
    envelope: str
    plaintext: str = field(repr=False)

    is_legacy = False

    @property
    def display_value(self) -> str:
        return self.plaintext


@dataclass(frozen=True)
class LegacyPlaintext:
    """Stored value that is not an envelope under the current key."""
    raw: str = field(repr=False)

    is_legacy = True

    @property
    def display_value(self) -> str:
        return self.raw


StoredSecret = Union[EncryptedSecret, LegacyPlaintext]
