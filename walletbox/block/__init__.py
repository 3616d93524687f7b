# walletbox/block/__init__.py
"""
WalletBox Block: Wallet Integration Layer

Connects the cryptographic core to wallets and shared storage.

Submodules:
    storage     - StoreClient: shared client with open/close lifecycle
    adapters/   - Wallet signers
                  - WalletSigner: abstract sign(bytes) -> bytes
                  - EthAccountSigner: eth-account (EIP-191)
                  - Ed25519Signer: PyNaCl Ed25519
    registry/   - Recipient key registry
                  - MemoryKeyRegistry: one derived public key per wallet
                  - KeyResolver: address -> derived public key
    wire/       - StoredMessage row format and column checks
    mailbox/    - Append-only MessageStore
    transport/  - WalletMessenger: publish_key / send / read_inbox

Quick Start:
    from walletbox.block import (
        StoreClient, MemoryKeyRegistry, MemoryMessageStore,
        WalletMessenger, EthAccountSigner,
    )

    alice = EthAccountSigner.create()
    bob = EthAccountSigner.create()

    with StoreClient() as client:
        messenger = WalletMessenger(MemoryKeyRegistry(client), MemoryMessageStore(client))
        await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, "gm")
        entries = await messenger.read_inbox(bob)
"""

# =============================================================================
# Storage
# =============================================================================
from .storage import (
    StoreClient,
    StoreError,
    StoreClosedError,
)

# =============================================================================
# Adapters - Wallet signers
# =============================================================================
from .adapters import (
    WalletSigner,
    MockWalletSigner,
    EthAccountSigner,
    Ed25519Signer,
    SignatureType,
    SignResult,
    WalletAdapterError,
    SignatureRejectedError,
    UnsupportedOperationError,
)

# =============================================================================
# Registry - Recipient keys
# =============================================================================
from .registry import (
    RecipientKeyRecord,
    KeyRegistry,
    MemoryKeyRegistry,
    KeyResolver,
    RegistryError,
    NoKeyFoundError,
)

# =============================================================================
# Wire / Mailbox - Stored messages
# =============================================================================
from .wire import (
    StoredMessage,
    RowValidationError,
    validate_message_row,
)

from .mailbox import (
    MessageStore,
    MemoryMessageStore,
    MessageStoreError,
)

# =============================================================================
# Transport - Messaging flow
# =============================================================================
from .transport import (
    WalletMessenger,
    MessengerConfig,
    InboxEntry,
    DecryptStatus,
    MessengerError,
    RecipientKeyNotFoundError,
)

__all__ = [
    # Storage
    "StoreClient",
    "StoreError",
    "StoreClosedError",
    # Adapters
    "WalletSigner",
    "MockWalletSigner",
    "EthAccountSigner",
    "Ed25519Signer",
    "SignatureType",
    "SignResult",
    "WalletAdapterError",
    "SignatureRejectedError",
    "UnsupportedOperationError",
    # Registry
    "RecipientKeyRecord",
    "KeyRegistry",
    "MemoryKeyRegistry",
    "KeyResolver",
    "RegistryError",
    "NoKeyFoundError",
    # Wire / Mailbox
    "StoredMessage",
    "RowValidationError",
    "validate_message_row",
    "MessageStore",
    "MemoryMessageStore",
    "MessageStoreError",
    # Transport
    "WalletMessenger",
    "MessengerConfig",
    "InboxEntry",
    "DecryptStatus",
    "MessengerError",
    "RecipientKeyNotFoundError",
]
