# walletbox/__init__.py
"""
WalletBox: Signature-Derived Key Encryption

Wallet-to-wallet encrypted messaging where no private key is stored:
- Recipient keys re-derived on demand from a wallet signature
- Per-message ephemeral X25519 + XSalsa20-Poly1305 (NaCl box)
- Versioned plaintext records with labeled legacy/binary decoding
- Explicit, labeled failure states (never a silently empty message)

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │  walletbox                                              │
    │  ├── cryptography/     # Protocol primitives            │
    │  │   ├── common.py     # Sizes, errors, base64, address │
    │  │   ├── codec.py      # PlaintextRecord, decode order  │
    │  │   ├── kdf.py        # Challenge -> DerivedKeyPair    │
    │  │   └── core.py       # Envelope, EncryptionEngine     │
    │  │                                                      │
    │  └── block/            # Wallet integration             │
    │      ├── storage.py    # Shared StoreClient             │
    │      ├── adapters/     # Wallet signers                 │
    │      ├── registry/     # Recipient key registry         │
    │      ├── wire/         # Stored message rows            │
    │      ├── mailbox/      # Append-only message store      │
    │      └── transport/    # WalletMessenger                │
    └─────────────────────────────────────────────────────────┘

Usage:
    from walletbox import EncryptionEngine, KeyDerivation

    kdf = KeyDerivation()
    keypair = await kdf.derive(signer.sign, signer.address)

    engine = EncryptionEngine()
    envelope = engine.encrypt("hello", keypair.public_key)
    with keypair:
        engine.decrypt(envelope, keypair.secret_key).text  # "hello"
"""

__version__ = "0.1.0"

# =============================================================================
# Core Cryptography
# =============================================================================

from .cryptography.common import (
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
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
)

from .cryptography.codec import (
    PlaintextRecord,
    DecodedMessage,
    PayloadKind,
    EnvelopeCodec,
)

from .cryptography.kdf import (
    Challenge,
    DerivedKeyPair,
    KeyDerivation,
    build_challenge,
    derive_keypair_from_signature,
)

from .cryptography.core import (
    Envelope,
    EncryptionEngine,
)

# =============================================================================
# Wallet Integration
# =============================================================================

from .block import (
    StoreClient,
    WalletSigner,
    MockWalletSigner,
    EthAccountSigner,
    Ed25519Signer,
    MemoryKeyRegistry,
    KeyResolver,
    MemoryMessageStore,
    StoredMessage,
    WalletMessenger,
    MessengerConfig,
    InboxEntry,
    DecryptStatus,
)

__all__ = [
    "__version__",
    # Constants
    "PUBLIC_KEY_SIZE",
    "SECRET_KEY_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
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
    # Codec
    "PlaintextRecord",
    "DecodedMessage",
    "PayloadKind",
    "EnvelopeCodec",
    # KDF
    "Challenge",
    "DerivedKeyPair",
    "KeyDerivation",
    "build_challenge",
    "derive_keypair_from_signature",
    # Core
    "Envelope",
    "EncryptionEngine",
    # Integration
    "StoreClient",
    "WalletSigner",
    "MockWalletSigner",
    "EthAccountSigner",
    "Ed25519Signer",
    "MemoryKeyRegistry",
    "KeyResolver",
    "MemoryMessageStore",
    "StoredMessage",
    "WalletMessenger",
    "MessengerConfig",
    "InboxEntry",
    "DecryptStatus",
]
