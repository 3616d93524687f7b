# walletbox/block/adapters/ethereum.py
"""
WalletBox Adapters: Ethereum Local Account Signer

Signs challenges with an eth-account LocalAccount using EIP-191
personal_sign, the same operation a browser wallet performs for
`personal_sign`. Signatures are 65 bytes (r || s || v).

ECDSA signing in eth-account uses RFC 6979 nonces, so the same
challenge always yields the same signature and therefore the same
derived key pair.

Usage:
    signer = EthAccountSigner.from_key("0x4c0883a6...")
    keypair = await KeyDerivation().derive(signer.sign, signer.address)
"""

from __future__ import annotations

from typing import Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct

from .base import SignResult, SignatureType, WalletSigner


class EthAccountSigner(WalletSigner):
    """
    Wallet signer backed by an eth-account LocalAccount.

    The account object stays private to the signer; only signatures
    and the checksummed address leave it.
    """

    def __init__(self, account, name: str = "EthAccount"):
        """
        Args:
            account: eth_account LocalAccount
            name: Display name
        """
        self._account = account
        self._name = name

    @classmethod
    def from_key(cls, private_key: Union[str, bytes], name: str = "EthAccount") -> EthAccountSigner:
        """Load signer from a hex or raw 32-byte private key."""
        return cls(Account.from_key(private_key), name=name)

    @classmethod
    def create(cls, extra_entropy: str = "", name: str = "EthAccount") -> EthAccountSigner:
        """Create a signer with a fresh random account."""
        return cls(Account.create(extra_entropy), name=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_message(self, message: bytes) -> SignResult:
        signable = encode_defunct(primitive=message)
        signed = self._account.sign_message(signable)
        return SignResult(
            signature=bytes(signed.signature),
            address=self._account.address,
            sig_type=SignatureType.PERSONAL,
        )

    @staticmethod
    def recover_address(message: bytes, signature: bytes) -> Optional[str]:
        """Recover the signing address of a personal_sign signature."""
        try:
            return Account.recover_message(encode_defunct(primitive=message), signature=signature)
        except ValueError:
            return None
