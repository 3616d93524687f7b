# walletbox/cryptography/__init__.py
"""
WalletBox Cryptography

Primitives of the signature-derived key encryption protocol.

Modules:
    common: constants, error taxonomy, base64 transport, address normalization
    codec:  PlaintextRecord and the ordered payload decode strategies
    kdf:    challenge strings and signature-derived X25519 key pairs
    core:   Envelope and the ephemeral-key EncryptionEngine
"""

from .common import (
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    SEED_SIZE,
    MIN_SIGNATURE_SIZE,
    WalletBoxError,
    SigningUnavailableError,
    MalformedSignatureError,
    NonDeterministicSignerError,
    InvalidKeyError,
    InvalidKeyLengthError,
    InvalidEnvelopeError,
    KeyMismatchError,
    DecryptionFailedError,
    EncodingError,
    b64encode,
    b64decode,
    is_base64,
    fingerprint,
    normalize_address,
    wipe,
)

from .codec import (
    CURRENT_FORMAT_VERSION,
    LEGACY_FORMAT_VERSION,
    BINARY_PREVIEW_BYTES,
    ContentType,
    PayloadKind,
    PlaintextRecord,
    DecodedMessage,
    EnvelopeCodec,
    binary_preview,
    decode_versioned_record,
    decode_legacy_text,
    decode_binary,
)

from .kdf import (
    DEFAULT_SCHEME_ID,
    SCHEME_CANONICAL_V1,
    SCHEME_LEGACY_RAW,
    SCHEMES,
    DerivationScheme,
    Challenge,
    DerivedKeyPair,
    KeyDerivation,
    build_challenge,
    derive_keypair_from_signature,
    get_scheme,
)

from .core import (
    ENVELOPE_WIRE_VERSION,
    Envelope,
    EncryptionEngine,
)

__all__ = [
    # Constants
    "PUBLIC_KEY_SIZE",
    "SECRET_KEY_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "SEED_SIZE",
    "MIN_SIGNATURE_SIZE",
    "CURRENT_FORMAT_VERSION",
    "LEGACY_FORMAT_VERSION",
    "BINARY_PREVIEW_BYTES",
    "ENVELOPE_WIRE_VERSION",
    # Errors
    "WalletBoxError",
    "SigningUnavailableError",
    "MalformedSignatureError",
    "NonDeterministicSignerError",
    "InvalidKeyError",
    "InvalidKeyLengthError",
    "InvalidEnvelopeError",
    "KeyMismatchError",
    "DecryptionFailedError",
    "EncodingError",
    # Helpers
    "b64encode",
    "b64decode",
    "is_base64",
    "fingerprint",
    "normalize_address",
    "wipe",
    # Codec
    "ContentType",
    "PayloadKind",
    "PlaintextRecord",
    "DecodedMessage",
    "EnvelopeCodec",
    "binary_preview",
    "decode_versioned_record",
    "decode_legacy_text",
    "decode_binary",
    # KDF
    "DEFAULT_SCHEME_ID",
    "SCHEME_CANONICAL_V1",
    "SCHEME_LEGACY_RAW",
    "SCHEMES",
    "DerivationScheme",
    "Challenge",
    "DerivedKeyPair",
    "KeyDerivation",
    "build_challenge",
    "derive_keypair_from_signature",
    "get_scheme",
    # Core
    "Envelope",
    "EncryptionEngine",
]
