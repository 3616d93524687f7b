# walletbox/cryptography/common.py
"""
WalletBox Common Components

Shared constants, error taxonomy, and byte-transport helpers used by the
key derivation, encryption, and payload codec modules.

Transport Encoding:
  - Envelope fields cross process/network boundaries as standard base64
  - Canonical form: padded alphabet (A-Z a-z 0-9 + /, '=' padding),
    no embedded whitespace, zero padding bits
  - Anything else is rejected with EncodingError before decoding
"""

from __future__ import annotations

import base64
import binascii
import hmac
import re
from typing import Optional, Type, Union

from nacl import bindings
from nacl.public import Box, PrivateKey, PublicKey
from web3 import Web3


# =============================================================================
# Constants
# =============================================================================

PUBLIC_KEY_SIZE: int = PublicKey.SIZE      # 32
SECRET_KEY_SIZE: int = PrivateKey.SIZE     # 32
NONCE_SIZE: int = Box.NONCE_SIZE           # 24
TAG_SIZE: int = bindings.crypto_box_ZEROBYTES - bindings.crypto_box_BOXZEROBYTES  # 16

SEED_SIZE: int = 32
MIN_SIGNATURE_SIZE: int = 32

FINGERPRINT_BYTES: int = 8

ByteLike = Union[bytes, bytearray, memoryview]


# =============================================================================
# Exceptions
# =============================================================================

class WalletBoxError(Exception):
    """Base exception for all WalletBox protocol errors."""
    pass


class SigningUnavailableError(WalletBoxError):
    """Wallet signer refused or could not produce a signature."""
    pass


class MalformedSignatureError(WalletBoxError):
    """Signature returned by the signer is unusable for derivation."""
    pass


class NonDeterministicSignerError(MalformedSignatureError):
    """Signing the same challenge twice produced different signatures."""
    pass


class InvalidKeyError(WalletBoxError):
    """Key material is unusable for key agreement."""
    pass


class InvalidKeyLengthError(InvalidKeyError):
    """Key has the wrong length."""
    def __init__(self, name: str, length: int, expected: int):
        self.name = name
        self.length = length
        self.expected = expected
        super().__init__(f"{name} must be {expected}B, got {length}B")


class InvalidEnvelopeError(WalletBoxError):
    """Envelope field missing or of the wrong size."""
    pass


class KeyMismatchError(WalletBoxError):
    """Secret key does not belong to the expected public key."""
    def __init__(self, expected: bytes, actual: bytes):
        self.expected = bytes(expected)
        self.actual = bytes(actual)
        super().__init__(
            f"Key mismatch: expected public key {fingerprint(self.expected)}, "
            f"secret key derives {fingerprint(self.actual)}"
        )


class DecryptionFailedError(WalletBoxError):
    """Authenticated decryption rejected the envelope."""
    pass


class EncodingError(WalletBoxError):
    """Text is not valid canonical padded base64."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def _ct_eq(a: bytes, b: bytes) -> bool:
    """Constant-time byte comparison (length check is not constant-time)."""
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


def fingerprint(key: bytes, length: int = FINGERPRINT_BYTES) -> str:
    """Truncated hex of a public key, safe for logs and error messages."""
    return bytes(key[:length]).hex() + "..."


def as_bytes(value: Optional[ByteLike], name: str) -> bytes:
    """
    Coerce a bytes-like value to bytes.

    Raises:
        TypeError: If value is None or not bytes-like
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"{name} must be bytes, got {type(value).__name__}")


def require_length(
    value: Optional[ByteLike],
    name: str,
    expected: int,
    error: Type[WalletBoxError] = InvalidKeyLengthError,
) -> bytes:
    """
    Check that value is bytes of exactly `expected` length.

    Args:
        value: Candidate bytes
        name: Field name for the error message
        expected: Required length
        error: InvalidKeyLengthError (keys) or InvalidEnvelopeError (fields)

    Returns:
        value as bytes
    """
    if value is None:
        if error is InvalidKeyLengthError:
            raise InvalidKeyLengthError(name, 0, expected)
        raise error(f"{name} is missing")
    data = as_bytes(value, name)
    if len(data) != expected:
        if error is InvalidKeyLengthError:
            raise InvalidKeyLengthError(name, len(data), expected)
        raise error(f"{name} must be {expected}B, got {len(data)}B")
    return data


def wipe(buf: Optional[bytearray]) -> None:
    """Overwrite a mutable buffer with zeros in place."""
    if buf is None:
        return
    for i in range(len(buf)):
        buf[i] = 0


# =============================================================================
# Base64 Transport Encoding
# =============================================================================

_B64_RE = re.compile(r"(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?")


def is_base64(text: object) -> bool:
    """Check that text is canonical padded base64 (empty string allowed)."""
    if not isinstance(text, str) or _B64_RE.fullmatch(text) is None:
        return False
    try:
        decoded = base64.b64decode(text, validate=True)
    except binascii.Error:
        return False
    return base64.b64encode(decoded).decode("ascii") == text


def b64encode(data: ByteLike) -> str:
    """Encode bytes as canonical padded base64 text."""
    return base64.b64encode(bytes(data)).decode("ascii")


def b64decode(text: object, field: str = "value") -> bytes:
    """
    Decode canonical padded base64.

    Raises:
        EncodingError: If text is not a str of canonical padded base64
    """
    if not isinstance(text, str):
        raise EncodingError(f"{field}: expected base64 text, got {type(text).__name__}")
    if _B64_RE.fullmatch(text) is None:
        raise EncodingError(f"{field}: not valid padded base64")
    try:
        decoded = base64.b64decode(text, validate=True)
    except binascii.Error as e:
        raise EncodingError(f"{field}: not valid padded base64") from e
    if base64.b64encode(decoded).decode("ascii") != text:
        raise EncodingError(f"{field}: non-canonical base64 padding bits")
    return decoded


# =============================================================================
# Wallet Addresses
# =============================================================================

def normalize_address(address: object) -> str:
    """
    Canonical text form of a wallet address.

    EVM addresses (0x + 40 hex) are returned EIP-55 checksummed so that
    any casing maps to the same challenge bytes. Other address families
    (base58, hex-encoded Ed25519 keys) are case-sensitive and returned
    as given after whitespace checks.

    Raises:
        ValueError: If address is empty or contains whitespace
    """
    if not isinstance(address, str):
        raise ValueError(f"Address must be str, got {type(address).__name__}")
    if not address or address != address.strip() or any(c.isspace() for c in address):
        raise ValueError(f"Invalid wallet address: {address!r}")
    if address[:2].lower() == "0x" and len(address) == 42:
        if not Web3.is_address(address.lower()):
            raise ValueError(f"Invalid EVM address: {address}")
        return Web3.to_checksum_address(address.lower())
    return address
