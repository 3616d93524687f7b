# walletbox/block/adapters/base.py
"""
WalletBox Adapters: Abstract Wallet Signer

The wallet is the only component allowed to hold a long-lived secret.
It exposes exactly one operation to the protocol: sign these bytes.
The underlying private key is never revealed.

Signer Implementations:
    - MockWalletSigner: deterministic mock for testing
    - EthAccountSigner: eth-account local account (EIP-191 personal_sign)
    - Ed25519Signer: PyNaCl Ed25519 signing key

Usage:
    signer = EthAccountSigner.create()
    signature = await signer.sign(challenge_bytes)

    kdf = KeyDerivation()
    keypair = await kdf.derive(signer.sign, signer.address)
"""

from __future__ import annotations

import asyncio
import hashlib
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ...cryptography.common import normalize_address


# =============================================================================
# Enums
# =============================================================================

class SignatureType(Enum):
    """Signature scheme produced by a signer."""
    PERSONAL = "personal_sign"   # EIP-191 secp256k1, r||s||v
    ED25519 = "ed25519"          # 64-byte Ed25519
    MOCK = "mock"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class SignResult:
    """Signature result."""
    signature: bytes
    address: str
    sig_type: SignatureType = SignatureType.PERSONAL


# =============================================================================
# Exceptions
# =============================================================================

class WalletAdapterError(Exception):
    """Base exception for wallet adapter errors."""
    pass


class SignatureRejectedError(WalletAdapterError):
    """User rejected signature request."""
    pass


class UnsupportedOperationError(WalletAdapterError):
    """Operation not supported by wallet."""
    pass


# =============================================================================
# Abstract Base Class
# =============================================================================

class WalletSigner(ABC):
    """
    Abstract base class for wallet signers.

    Subclasses implement sign_message(); the protocol only ever calls
    sign(), which returns the raw signature bytes.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get signer name."""
        pass

    @property
    @abstractmethod
    def address(self) -> str:
        """Get the wallet's public address."""
        pass

    @property
    def deterministic(self) -> bool:
        """Whether signing the same bytes twice yields identical signatures."""
        return True

    @abstractmethod
    async def sign_message(self, message: bytes) -> SignResult:
        """
        Sign a message.

        Args:
            message: Bytes to sign

        Returns:
            SignResult with signature

        Raises:
            SignatureRejectedError: If user rejects
            UnsupportedOperationError: If the wallet cannot sign messages
        """
        pass

    async def sign(self, message: bytes) -> bytes:
        """Sign bytes and return the raw signature."""
        if not isinstance(message, (bytes, bytearray)):
            raise TypeError(f"message must be bytes, got {type(message).__name__}")
        result = await self.sign_message(bytes(message))
        return result.signature

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self.address})"


# =============================================================================
# Mock Signer (for testing)
# =============================================================================

class MockWalletSigner(WalletSigner):
    """
    Mock wallet signer for testing.

    Produces a 65-byte r||s||v-shaped signature from a hash of the
    message and address (not cryptographically valid).
    """

    def __init__(
        self,
        address: str = "0x" + "1" * 40,
        auto_approve: bool = True,
        supported: bool = True,
        randomized: bool = False,
        delay: float = 0.0,
        signature_size: int = 65,
    ):
        """
        Args:
            address: Wallet address
            auto_approve: False simulates the user rejecting every prompt
            supported: False simulates a wallet without message signing
            randomized: True mixes fresh randomness into every signature
            delay: Seconds to wait before answering (simulates a prompt)
            signature_size: Length of returned signatures
        """
        self._address = normalize_address(address)
        self._auto_approve = auto_approve
        self._supported = supported
        self._randomized = randomized
        self._delay = delay
        self._signature_size = signature_size
        self.sign_count = 0
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return "MockWallet"

    @property
    def address(self) -> str:
        return self._address

    @property
    def deterministic(self) -> bool:
        return not self._randomized

    def set_auto_approve(self, approve: bool) -> None:
        self._auto_approve = approve

    async def sign_message(self, message: bytes) -> SignResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)

            if not self._supported:
                raise UnsupportedOperationError("Wallet does not support message signing")
            if not self._auto_approve:
                raise SignatureRejectedError("User rejected")

            salt = secrets.token_bytes(32) if self._randomized else b""
            sig_hash = hashlib.sha256(
                b"mock_sign" + message + self._address.encode() + salt
            ).digest()
            signature = (sig_hash + sig_hash + b"\x1b")[:self._signature_size]

            self.sign_count += 1
            return SignResult(
                signature=signature,
                address=self._address,
                sig_type=SignatureType.MOCK,
            )
        finally:
            self.in_flight -= 1
