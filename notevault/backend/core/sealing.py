"""
Passphrase Sealing.

Authenticated encryption of note content under a caller-supplied passphrase.
The server never stores the passphrase or any derived key; every open
re-derives the key from the passphrase presented on that request.

Blob layout:
    version (1) | salt (16) | nonce (12) | AES-256-GCM ciphertext + tag (16)

The 29-byte header is bound as associated data, so flipping any header byte
fails authentication the same way a wrong passphrase does.

Usage:
    from notevault.backend.core.sealing import seal, open_sealed

    blob = seal("correct horse", b"hello")
    assert open_sealed("correct horse", blob) == b"hello"
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from notevault.backend.core.exceptions import FieldErrorKind, ValidationError

SEAL_VERSION = 1
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32
HEADER_SIZE = 1 + SALT_SIZE + NONCE_SIZE

PASSPHRASE_MIN_LENGTH = 4
PASSPHRASE_MAX_LENGTH = 1024

# scrypt work factors (RFC 7914 interactive parameters)
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1


class SealingPolicyError(ValueError):
    """Passphrase rejected before any cryptography runs."""

    kind: FieldErrorKind


class PassphraseTooShort(SealingPolicyError):
    kind = FieldErrorKind.TOO_SHORT


class PassphraseTooLong(SealingPolicyError):
    kind = FieldErrorKind.TOO_LONG


class AuthenticationFailed(Exception):
    """Wrong passphrase, or a blob that is truncated, tampered, or unknown."""


def passphrase_policy_violation(
    passphrase: str,
    min_length: int = PASSPHRASE_MIN_LENGTH,
    max_length: int = PASSPHRASE_MAX_LENGTH,
) -> FieldErrorKind | None:
    """Return the policy violation for a passphrase, or None when acceptable."""
    if len(passphrase) < min_length:
        return FieldErrorKind.TOO_SHORT
    if len(passphrase) >= max_length:
        return FieldErrorKind.TOO_LONG
    return None


def check_passphrase(
    passphrase: str,
    field: str = "passphrase",
    min_length: int = PASSPHRASE_MIN_LENGTH,
    max_length: int = PASSPHRASE_MAX_LENGTH,
) -> None:
    """
    Enforce the passphrase length policy.

    Raises:
        ValidationError: With a (field, too_short | too_long) pair
    """
    kind = passphrase_policy_violation(passphrase, min_length, max_length)
    if kind is not None:
        raise ValidationError.from_fields([(field, kind)])


def _derive_key(passphrase: str, salt: bytes) -> bytes:
    kdf = Scrypt(salt=salt, length=KEY_SIZE, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(passphrase.encode("utf-8"))


def seal(passphrase: str, plaintext: bytes) -> bytes:
    """
    Seal plaintext under a passphrase with a fresh salt and nonce.

    Raises:
        PassphraseTooShort: If the passphrase has fewer than 4 characters
        PassphraseTooLong: If the passphrase has 1024 characters or more
    """
    kind = passphrase_policy_violation(passphrase)
    if kind is FieldErrorKind.TOO_SHORT:
        raise PassphraseTooShort("Passphrase is too short")
    if kind is FieldErrorKind.TOO_LONG:
        raise PassphraseTooLong("Passphrase is too long")

    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    header = bytes([SEAL_VERSION]) + salt + nonce

    key = _derive_key(passphrase, salt)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, header)
    return header + ciphertext


def open_sealed(passphrase: str, blob: bytes) -> bytes:
    """
    Open a blob produced by seal().

    Raises:
        AuthenticationFailed: On any mismatch. The caller cannot tell a wrong
            passphrase from a damaged blob.
    """
    if len(blob) < HEADER_SIZE + TAG_SIZE or blob[0] != SEAL_VERSION:
        raise AuthenticationFailed("Sealed content could not be opened")
    if not passphrase:
        raise AuthenticationFailed("Sealed content could not be opened")

    header = blob[:HEADER_SIZE]
    salt = header[1:1 + SALT_SIZE]
    nonce = header[1 + SALT_SIZE:]

    key = _derive_key(passphrase, salt)
    try:
        return AESGCM(key).decrypt(nonce, blob[HEADER_SIZE:], header)
    except InvalidTag as e:
        raise AuthenticationFailed("Sealed content could not be opened") from e
