# walletbox/cryptography/core.py
"""
WalletBox Core: Ephemeral-Key Authenticated Encryption

Per-message encryption to a recipient's derived X25519 public key:

    eph_sk, eph_pk = X25519 keygen (fresh, never reused)
    nonce          = 24 random bytes (fresh, never reused)
    shared         = X25519(eph_sk, recipient_pk)
    ciphertext     = XSalsa20-Poly1305(shared, nonce, record_bytes)

Output is byte-compatible with tweetnacl `box` (tag || ciphertext).

Envelope Transport Forms:
    dict  : {"ciphertext", "nonce", "ephemeralPublicKey"} as padded base64
    bytes : version(1) || ephemeral_public_key(32) || nonce(24) || ciphertext

Usage:
    engine = EncryptionEngine()
    envelope = engine.encrypt("hello", recipient_public_key)
    decoded = engine.decrypt(envelope, recipient_secret_key)
    decoded.text  # "hello"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import nacl.utils
from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey

from .codec import DecodedMessage, EnvelopeCodec, PlaintextRecord
from .common import (
    ByteLike,
    NONCE_SIZE,
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
    TAG_SIZE,
    DecryptionFailedError,
    InvalidEnvelopeError,
    InvalidKeyError,
    KeyMismatchError,
    _ct_eq,
    as_bytes,
    b64decode,
    b64encode,
    fingerprint,
    require_length,
)
from .kdf import DerivedKeyPair

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

ENVELOPE_WIRE_VERSION: int = 0x01
ENVELOPE_HEADER_SIZE: int = 1 + PUBLIC_KEY_SIZE + NONCE_SIZE   # 57


# =============================================================================
# Envelope
# =============================================================================

@dataclass(frozen=True)
class Envelope:
    """
    Output of one encryption operation.

    Attributes:
        ciphertext: Poly1305 tag || XSalsa20 ciphertext (> 16 bytes)
        nonce: 24-byte nonce
        ephemeral_public_key: 32-byte sender ephemeral X25519 public key
    """
    ciphertext: bytes
    nonce: bytes
    ephemeral_public_key: bytes

    def validate(self) -> Envelope:
        """
        Check field presence and sizes.

        Raises:
            InvalidEnvelopeError: On a missing or wrongly sized field
        """
        for name in ("ciphertext", "nonce", "ephemeral_public_key"):
            value = getattr(self, name)
            if value is None:
                raise InvalidEnvelopeError(f"{name} is missing")
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise InvalidEnvelopeError(f"{name} must be bytes, got {type(value).__name__}")
        require_length(self.nonce, "nonce", NONCE_SIZE, error=InvalidEnvelopeError)
        require_length(
            self.ephemeral_public_key, "ephemeral_public_key", PUBLIC_KEY_SIZE,
            error=InvalidEnvelopeError,
        )
        if len(self.ciphertext) <= TAG_SIZE:
            raise InvalidEnvelopeError(
                f"ciphertext must exceed {TAG_SIZE}B tag, got {len(self.ciphertext)}B"
            )
        return self

    # -------------------------------------------------------------------------
    # Text transport (base64)
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, str]:
        """Base64 transport form (keys match the JS client)."""
        return {
            "ciphertext": b64encode(self.ciphertext),
            "nonce": b64encode(self.nonce),
            "ephemeralPublicKey": b64encode(self.ephemeral_public_key),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Envelope:
        """
        Parse the base64 transport form.

        Accepts "ephemeralPublicKey" or "ephemeral_public_key".

        Raises:
            InvalidEnvelopeError: Missing field or wrong decoded size
            EncodingError: Field is not canonical padded base64
        """
        if not isinstance(data, Mapping):
            raise InvalidEnvelopeError(f"Envelope must be a mapping, got {type(data).__name__}")
        epk_text = data.get("ephemeralPublicKey", data.get("ephemeral_public_key"))
        fields = {
            "ciphertext": data.get("ciphertext"),
            "nonce": data.get("nonce"),
            "ephemeral_public_key": epk_text,
        }
        for name, value in fields.items():
            if value is None or value == "":
                raise InvalidEnvelopeError(f"{name} is missing")
        envelope = cls(
            ciphertext=b64decode(fields["ciphertext"], "ciphertext"),
            nonce=b64decode(fields["nonce"], "nonce"),
            ephemeral_public_key=b64decode(fields["ephemeral_public_key"], "ephemeral_public_key"),
        )
        return envelope.validate()

    # -------------------------------------------------------------------------
    # Binary transport
    # -------------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        """Compact binary form."""
        self.validate()
        return (
            bytes([ENVELOPE_WIRE_VERSION])
            + bytes(self.ephemeral_public_key)
            + bytes(self.nonce)
            + bytes(self.ciphertext)
        )

    @classmethod
    def from_bytes(cls, data: ByteLike) -> Envelope:
        """
        Parse the compact binary form.

        Raises:
            InvalidEnvelopeError: Unknown version or truncated data
        """
        raw = as_bytes(data, "data")
        if len(raw) < ENVELOPE_HEADER_SIZE + TAG_SIZE + 1:
            raise InvalidEnvelopeError(f"Envelope too short: {len(raw)}B")
        if raw[0] != ENVELOPE_WIRE_VERSION:
            raise InvalidEnvelopeError(f"Unknown envelope version: 0x{raw[0]:02x}")
        offset = 1
        epk = raw[offset:offset + PUBLIC_KEY_SIZE]
        offset += PUBLIC_KEY_SIZE
        nonce = raw[offset:offset + NONCE_SIZE]
        offset += NONCE_SIZE
        return cls(ciphertext=raw[offset:], nonce=nonce, ephemeral_public_key=epk).validate()


# =============================================================================
# EncryptionEngine
# =============================================================================

class EncryptionEngine:
    """
    Ephemeral-key encryption against derived public keys.

    Stateless apart from its codec; safe to share across threads.
    Ephemeral key pairs and nonces are generated inside every call
    and never cached.
    """

    def __init__(self, codec: Optional[EnvelopeCodec] = None):
        self._codec = codec or EnvelopeCodec()

    @property
    def codec(self) -> EnvelopeCodec:
        return self._codec

    # =========================================================================
    # Encryption
    # =========================================================================

    def encrypt(
        self,
        plaintext: str,
        recipient_public_key: ByteLike,
        timestamp: Optional[str] = None,
    ) -> Envelope:
        """
        Encrypt a text message for a recipient.

        Args:
            plaintext: Message text
            recipient_public_key: Recipient's 32-byte derived public key
            timestamp: Optional ISO-8601 time for the record (default: now)

        Returns:
            Envelope

        Raises:
            InvalidKeyLengthError: If recipient_public_key is not 32 bytes
            InvalidKeyError: If recipient_public_key is a low-order point
        """
        return self.encrypt_record(
            PlaintextRecord.text(plaintext, timestamp=timestamp), recipient_public_key
        )

    def encrypt_bytes(
        self,
        data: ByteLike,
        recipient_public_key: ByteLike,
        timestamp: Optional[str] = None,
    ) -> Envelope:
        """Encrypt raw bytes as a binary record."""
        return self.encrypt_record(
            PlaintextRecord.binary(data, timestamp=timestamp), recipient_public_key
        )

    def encrypt_record(self, record: PlaintextRecord, recipient_public_key: ByteLike) -> Envelope:
        """Encrypt an already-built record."""
        recipient = require_length(recipient_public_key, "recipient_public_key", PUBLIC_KEY_SIZE)
        plaintext = self._codec.encode(record)

        ephemeral = PrivateKey.generate()
        nonce = nacl.utils.random(NONCE_SIZE)
        try:
            box = Box(ephemeral, PublicKey(recipient))
        except CryptoError as e:
            raise InvalidKeyError(
                f"Recipient public key {fingerprint(recipient)} is not usable for key agreement"
            ) from e

        encrypted = box.encrypt(plaintext, nonce)
        envelope = Envelope(
            ciphertext=encrypted.ciphertext,
            nonce=nonce,
            ephemeral_public_key=bytes(ephemeral.public_key),
        )
        del box, ephemeral

        logger.debug(
            f"Encrypted {len(plaintext)}B record for {fingerprint(recipient)} "
            f"(ciphertext {len(envelope.ciphertext)}B)"
        )
        return envelope

    # =========================================================================
    # Decryption
    # =========================================================================

    def open(
        self,
        envelope: Envelope,
        recipient_secret_key: ByteLike,
        expected_public_key: Optional[ByteLike] = None,
    ) -> bytes:
        """
        Authenticate and decrypt, returning raw plaintext bytes.

        Raises:
            InvalidEnvelopeError: Envelope field missing or wrongly sized
            InvalidKeyLengthError: Secret or expected key not 32 bytes
            KeyMismatchError: Secret key does not derive expected_public_key
            DecryptionFailedError: Authentication failed
        """
        if envelope is None:
            raise InvalidEnvelopeError("Envelope is missing")
        envelope.validate()
        secret = require_length(recipient_secret_key, "recipient_secret_key", SECRET_KEY_SIZE)
        private_key = PrivateKey(secret)

        if expected_public_key is not None:
            expected = require_length(expected_public_key, "expected_public_key", PUBLIC_KEY_SIZE)
            actual = bytes(private_key.public_key)
            if not _ct_eq(expected, actual):
                raise KeyMismatchError(expected, actual)

        epk = bytes(envelope.ephemeral_public_key)
        if epk[-1] & 0x80:
            # X25519 ignores this bit; reject so it cannot be flipped silently
            raise DecryptionFailedError("Non-canonical ephemeral public key")

        try:
            box = Box(private_key, PublicKey(epk))
            plaintext = box.decrypt(bytes(envelope.ciphertext), bytes(envelope.nonce))
        except CryptoError as e:
            raise DecryptionFailedError(
                "Decryption failed: wrong key, corrupted data, or wrong nonce"
            ) from e
        return plaintext

    def decrypt(
        self,
        envelope: Envelope,
        recipient_secret_key: ByteLike,
        expected_public_key: Optional[ByteLike] = None,
    ) -> DecodedMessage:
        """
        Decrypt and decode an envelope.

        Args:
            envelope: Envelope from encrypt()
            recipient_secret_key: Recipient's 32-byte derived secret key
            expected_public_key: Recipient's own derived public key (optional)

        Returns:
            DecodedMessage (record, legacy text, or binary preview)
        """
        plaintext = self.open(envelope, recipient_secret_key, expected_public_key)
        return self._codec.decode_payload(plaintext)

    def decrypt_with(
        self,
        envelope: Envelope,
        keypair: DerivedKeyPair,
        expected_public_key: Optional[ByteLike] = None,
    ) -> DecodedMessage:
        """Decrypt with a DerivedKeyPair."""
        return self.decrypt(envelope, keypair.secret_key, expected_public_key=expected_public_key)
