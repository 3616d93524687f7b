# walletbox/block/adapters/__init__.py
"""
WalletBox Block Adapters: Wallet Signers

Signers hold the only long-lived secret in the system and expose a
single operation to the protocol: sign(bytes) -> bytes.

Adapters:
    WalletSigner      - Abstract base class for all signers
    MockWalletSigner  - Mock implementation for testing
    EthAccountSigner  - eth-account LocalAccount (EIP-191 personal_sign)
    Ed25519Signer     - PyNaCl Ed25519 signing key

Quick Start:
    from walletbox.block.adapters import EthAccountSigner

    signer = EthAccountSigner.create()
    signature = await signer.sign(b"walletbox:v1:messaging-key:" + ...)
"""

from .base import (
    # Abstract signer
    WalletSigner,
    MockWalletSigner,

    # Types
    SignatureType,
    SignResult,

    # Exceptions
    WalletAdapterError,
    SignatureRejectedError,
    UnsupportedOperationError,
)

from .ethereum import EthAccountSigner
from .ed25519 import Ed25519Signer

__all__ = [
    # === Base ===
    "WalletSigner",
    "MockWalletSigner",
    "SignatureType",
    "SignResult",
    "WalletAdapterError",
    "SignatureRejectedError",
    "UnsupportedOperationError",

    # === Signers ===
    "EthAccountSigner",
    "Ed25519Signer",
]
