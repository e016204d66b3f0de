# Vault - Cipher Envelope Format
#
# Records are stored in the OpenSSL "enc" passphrase format, which is also
# what the browser client emitted, so old records decode unchanged:
#
#   base64( b"Salted__" || salt (8 bytes) || AES-256-CBC ciphertext )
#
# Key and IV come from EVP_BytesToKey(MD5, passphrase, salt, count=1).
# Plaintext is UTF-8 with PKCS#7 padding.

import base64
import binascii
import os
from typing import Tuple

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

MAGIC = b"Salted__"
SALT_LENGTH = 8
KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16
BLOCK_SIZE_BITS = 128

# base64 of MAGIC; every envelope starts with it
ENVELOPE_PREFIX = "U2FsdGVkX1"


class MalformedEnvelope(ValueError):
    """Raised when a string is not a structurally valid envelope."""


def evp_bytes_to_key(passphrase: bytes, salt: bytes,
                     key_length: int = KEY_LENGTH,
                     iv_length: int = IV_LENGTH) -> Tuple[bytes, bytes]:
    """
    OpenSSL EVP_BytesToKey with MD5 and a single iteration.

    D_i = MD5(D_(i-1) || passphrase || salt), concatenated until there are
    enough bytes for key + IV.
    """
    derived = b""
    block = b""
    while len(derived) < key_length + iv_length:
        digest = hashes.Hash(hashes.MD5(), backend=default_backend())
        digest.update(block + passphrase + salt)
        block = digest.finalize()
        derived += block
    return derived[:key_length], derived[key_length:key_length + iv_length]


def generate_salt() -> bytes:
    """Generate a random 8-byte salt (fresh for every envelope)."""
    return os.urandom(SALT_LENGTH)


def seal(plaintext: bytes, passphrase: bytes, salt: bytes) -> str:
    """Encrypt ``plaintext`` and serialize it as a base64 envelope."""
    key, iv = evp_bytes_to_key(passphrase, salt)

    padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend()).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return base64.b64encode(MAGIC + salt + ciphertext).decode("ascii")


def parse(envelope: str) -> Tuple[bytes, bytes]:
    """
    Split an envelope into (salt, ciphertext).

    Raises:
        MalformedEnvelope: Not base64, missing the salt header, or the
                           ciphertext is not a whole number of AES blocks
    """
    try:
        raw = base64.b64decode(envelope.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise MalformedEnvelope(f"not base64: {e}") from e

    if not raw.startswith(MAGIC):
        raise MalformedEnvelope("missing salt header")

    salt = raw[len(MAGIC):len(MAGIC) + SALT_LENGTH]
    ciphertext = raw[len(MAGIC) + SALT_LENGTH:]
    if len(salt) != SALT_LENGTH:
        raise MalformedEnvelope("truncated salt")
    if not ciphertext or len(ciphertext) % (BLOCK_SIZE_BITS // 8):
        raise MalformedEnvelope("ciphertext is not a whole number of blocks")

    return salt, ciphertext


def open_envelope(envelope: str, passphrase: bytes) -> bytes:
    """
    Decrypt an envelope and strip its padding.

    Raises:
        MalformedEnvelope: Structure is invalid, or the padding does not
                           check out (wrong key or corrupted data)
    """
    salt, ciphertext = parse(envelope)
    key, iv = evp_bytes_to_key(passphrase, salt)

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend()).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise MalformedEnvelope("bad padding") from e


def looks_like_envelope(value: str) -> bool:
    """Cheap structural check: would ``parse`` accept this value?"""
    if not isinstance(value, str) or not value.startswith(ENVELOPE_PREFIX):
        return False
    try:
        parse(value)
    except MalformedEnvelope:
        return False
    return True
