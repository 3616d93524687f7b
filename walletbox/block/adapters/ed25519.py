# walletbox/block/adapters/ed25519.py
"""
WalletBox Adapters: Ed25519 Signer

Ed25519 wallets (e.g. Solana keypairs) sign with a deterministic
scheme: a 64-byte signature fully determined by key and message.
The address is the hex-encoded 32-byte verify key.

Usage:
    signer = Ed25519Signer.generate()
    keypair = await KeyDerivation().derive(signer.sign, signer.address)
"""

from __future__ import annotations

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from ...cryptography.common import SEED_SIZE, require_length
from .base import SignResult, SignatureType, WalletSigner


class Ed25519Signer(WalletSigner):
    """Wallet signer backed by a PyNaCl SigningKey."""

    def __init__(self, signing_key: SigningKey, name: str = "Ed25519"):
        self._signing_key = signing_key
        self._address = signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii")
        self._name = name

    @classmethod
    def generate(cls, name: str = "Ed25519") -> Ed25519Signer:
        return cls(SigningKey.generate(), name=name)

    @classmethod
    def from_seed(cls, seed: bytes, name: str = "Ed25519") -> Ed25519Signer:
        """Load signer from a 32-byte Ed25519 seed."""
        return cls(SigningKey(require_length(seed, "seed", SEED_SIZE)), name=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def address(self) -> str:
        return self._address

    async def sign_message(self, message: bytes) -> SignResult:
        signed = self._signing_key.sign(message)
        return SignResult(
            signature=bytes(signed.signature),
            address=self._address,
            sig_type=SignatureType.ED25519,
        )

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Check a signature against this signer's verify key."""
        verify_key = VerifyKey(bytes.fromhex(self._address))
        try:
            verify_key.verify(message, signature)
        except BadSignatureError:
            return False
        return True
