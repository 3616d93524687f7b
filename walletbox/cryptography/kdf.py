# walletbox/cryptography/kdf.py
"""
WalletBox KDF: Signature-Derived Key Pairs

Reconstructs a recipient's X25519 key pair on demand from a wallet
signature over a fixed challenge string. Nothing secret is persisted:
signing the same challenge with the same wallet key reproduces the
same signature, and therefore the same key pair.

Derivation (scheme 0x01, canonical):
    challenge = "walletbox:v1:messaging-key:" || normalized address
    signature = wallet.sign(challenge)          (>= 32 bytes)
    seed      = SHA-256("walletbox-seed-v1" || signature)
    keypair   = X25519 key pair with secret key = seed

Legacy (scheme 0x00, opt-in only):
    secret key = signature[:32] over the DM the DEV application's
    challenge text. Never tried automatically.

Precondition:
    The signer must be deterministic (Ed25519, RFC 6979 ECDSA).
    probe_determinism() checks this against a live signer.

Usage:
    kdf = KeyDerivation()
    with await kdf.derive(signer.sign, signer.address) as keypair:
        engine.decrypt(envelope, keypair.secret_key)
"""

from __future__ import annotations

import asyncio
import hashlib
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from nacl.public import PrivateKey

from .common import (
    ByteLike,
    MIN_SIGNATURE_SIZE,
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
    SEED_SIZE,
    MalformedSignatureError,
    NonDeterministicSignerError,
    SigningUnavailableError,
    _ct_eq,
    fingerprint,
    normalize_address,
    require_length,
    wipe,
)

logger = logging.getLogger(__name__)

SignCallable = Callable[[bytes], Union[Awaitable[Any], Any]]


# =============================================================================
# Derivation Schemes
# =============================================================================

@dataclass(frozen=True)
class DerivationScheme:
    """Versioned challenge and seed parameters."""
    id: int
    name: str
    challenge_template: str      # formatted with address=
    seed_domain: bytes           # prefix hashed before the signature
    hash_name: Optional[str]     # hashlib name, None = raw signature slice
    legacy: bool

    def challenge_text(self, address: str) -> str:
        return self.challenge_template.format(address=address)

    def seed_from_signature(self, signature: bytes) -> bytes:
        """Map signature bytes to a 32-byte key-agreement seed."""
        if self.hash_name is None:
            return signature[:SEED_SIZE]
        digest = hashlib.new(self.hash_name, self.seed_domain + signature).digest()
        if len(digest) < SEED_SIZE:
            raise ValueError(f"{self.hash_name} digest shorter than {SEED_SIZE}B")
        return digest[:SEED_SIZE]


SCHEME_CANONICAL_V1: int = 0x01
SCHEME_LEGACY_RAW: int = 0x00

SCHEMES: Dict[int, DerivationScheme] = {
    0x01: DerivationScheme(
        id=0x01,
        name="walletbox-v1",
        challenge_template="walletbox:v1:messaging-key:{address}",
        seed_domain=b"walletbox-seed-v1",
        hash_name="sha256",
        legacy=False,
    ),
    0x00: DerivationScheme(
        id=0x00,
        name="legacy-raw-signature",
        challenge_template=(
            "Sign this message to decrypt your messages on DM the DEV.\n\n"
            "Wallet: {address}"
        ),
        seed_domain=b"",
        hash_name=None,
        legacy=True,
    ),
}

DEFAULT_SCHEME_ID: int = SCHEME_CANONICAL_V1


def get_scheme(scheme_id: int) -> DerivationScheme:
    """Get derivation scheme by ID."""
    if scheme_id not in SCHEMES:
        raise ValueError(f"Unknown derivation scheme: 0x{scheme_id:02x}")
    return SCHEMES[scheme_id]


# =============================================================================
# Challenge
# =============================================================================

@dataclass(frozen=True)
class Challenge:
    """
    Fixed text a wallet signs to produce derivation input.

    Recomputed on every use, never stored. Contains no time-varying data.
    """
    address: str
    scheme_id: int = DEFAULT_SCHEME_ID

    @property
    def scheme(self) -> DerivationScheme:
        return get_scheme(self.scheme_id)

    @property
    def text(self) -> str:
        return self.scheme.challenge_text(self.address)

    def to_bytes(self) -> bytes:
        return self.text.encode("utf-8")


def build_challenge(wallet_address: str, scheme_id: int = DEFAULT_SCHEME_ID) -> Challenge:
    """Build the challenge for a wallet address (address is normalized)."""
    get_scheme(scheme_id)
    return Challenge(address=normalize_address(wallet_address), scheme_id=scheme_id)


# =============================================================================
# DerivedKeyPair
# =============================================================================

class DerivedKeyPair:
    """
    X25519 key pair reconstructed from a signature.

    The secret key lives in a bytearray that wipe() zeroes. Use as a
    context manager to bound its lifetime:

        with keypair:
            ...  # secret usable here
        # keypair.secret_key now raises ValueError

    Wiping is best effort: bytes copies handed to PyNaCl are immutable
    and are reclaimed by the garbage collector.
    """

    def __init__(
        self,
        public_key: ByteLike,
        secret_key: ByteLike,
        scheme_id: int = DEFAULT_SCHEME_ID,
        address: Optional[str] = None,
    ):
        self._public_key = require_length(public_key, "public_key", PUBLIC_KEY_SIZE)
        self._secret = bytearray(require_length(secret_key, "secret_key", SECRET_KEY_SIZE))
        self._scheme_id = scheme_id
        self._address = address
        self._wiped = False

    @classmethod
    def from_secret_key(
        cls,
        secret_key: ByteLike,
        scheme_id: int = DEFAULT_SCHEME_ID,
        address: Optional[str] = None,
    ) -> DerivedKeyPair:
        """Build a key pair from a raw 32-byte X25519 secret key."""
        secret = require_length(secret_key, "secret_key", SECRET_KEY_SIZE)
        public = bytes(PrivateKey(secret).public_key)
        return cls(public, secret, scheme_id=scheme_id, address=address)

    @property
    def public_key(self) -> bytes:
        """32-byte public key, safe to publish."""
        return self._public_key

    @property
    def secret_key(self) -> bytes:
        """32-byte secret key."""
        if self._wiped:
            raise ValueError("DerivedKeyPair has been wiped")
        return bytes(self._secret)

    @property
    def scheme_id(self) -> int:
        return self._scheme_id

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def is_wiped(self) -> bool:
        return self._wiped

    def private_key(self) -> PrivateKey:
        """PyNaCl PrivateKey view of the secret key."""
        return PrivateKey(self.secret_key)

    def wipe(self) -> None:
        """Zero the secret key buffer."""
        wipe(self._secret)
        self._wiped = True

    def __enter__(self) -> DerivedKeyPair:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return (
            f"DerivedKeyPair(public_key={fingerprint(self._public_key)}, "
            f"scheme=0x{self._scheme_id:02x}, wiped={self._wiped})"
        )


# =============================================================================
# Derivation Functions
# =============================================================================

def _signature_bytes(signature: Any) -> bytes:
    """Validate signer output."""
    if isinstance(signature, (bytearray, memoryview)):
        signature = bytes(signature)
    if not isinstance(signature, bytes):
        raise MalformedSignatureError(
            f"Signature must be bytes, got {type(signature).__name__}"
        )
    if len(signature) < MIN_SIGNATURE_SIZE:
        raise MalformedSignatureError(
            f"Signature too short: {len(signature)}B (minimum {MIN_SIGNATURE_SIZE}B)"
        )
    return signature


def derive_keypair_from_signature(
    signature: ByteLike,
    scheme_id: int = DEFAULT_SCHEME_ID,
    address: Optional[str] = None,
) -> DerivedKeyPair:
    """
    Derive a key pair from signature bytes (pure, deterministic).

    Args:
        signature: Signer output over the scheme's challenge
        scheme_id: Derivation scheme (default: canonical v1)
        address: Wallet address the challenge was built for (metadata only)

    Returns:
        DerivedKeyPair

    Raises:
        MalformedSignatureError: If signature is not bytes or is too short
    """
    sig = _signature_bytes(signature)
    scheme = get_scheme(scheme_id)

    seed = bytearray(scheme.seed_from_signature(sig))
    try:
        public = bytes(PrivateKey(bytes(seed)).public_key)
        keypair = DerivedKeyPair(public, seed, scheme_id=scheme.id, address=address)
    finally:
        wipe(seed)

    if scheme.legacy:
        logger.warning(f"Derived key with legacy scheme {scheme.name}: {fingerprint(public)}")
    else:
        logger.debug(f"Derived key ({scheme.name}): {fingerprint(public)}")
    return keypair


# =============================================================================
# KeyDerivation
# =============================================================================

class KeyDerivation:
    """
    Wallet-signature key derivation.

    Holds at most one outstanding signing request at a time; a second
    derive() waits for the first prompt to settle.
    """

    def __init__(
        self,
        scheme_id: int = DEFAULT_SCHEME_ID,
        signing_timeout: Optional[float] = None,
    ):
        """
        Args:
            scheme_id: Derivation scheme for every derive() call
            signing_timeout: Seconds to wait for the signer (None = unbounded)
        """
        self._scheme = get_scheme(scheme_id)
        self._signing_timeout = signing_timeout
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def scheme(self) -> DerivationScheme:
        return self._scheme

    def challenge_for(self, wallet_address: str) -> Challenge:
        return build_challenge(wallet_address, self._scheme.id)

    def _signing_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def request_signature(self, sign: SignCallable, challenge: Challenge) -> bytes:
        """
        Ask the signer to sign the challenge.

        Raises:
            SigningUnavailableError: Signer raised, timed out, or returned nothing
            MalformedSignatureError: Signer returned unusable bytes
        """
        async with self._signing_lock():
            try:
                result = sign(challenge.to_bytes())
                if inspect.isawaitable(result):
                    if self._signing_timeout is not None:
                        result = await asyncio.wait_for(result, self._signing_timeout)
                    else:
                        result = await result
            except asyncio.TimeoutError as e:
                raise SigningUnavailableError(
                    f"Signer did not respond within {self._signing_timeout}s"
                ) from e
            except Exception as e:
                raise SigningUnavailableError(f"Signer could not sign challenge: {e}") from e

        if result is None:
            raise SigningUnavailableError("Signer returned no signature")
        return _signature_bytes(result)

    async def derive(self, sign: SignCallable, wallet_address: str) -> DerivedKeyPair:
        """
        Derive the key pair for a wallet address.

        Args:
            sign: Signer capability, bytes -> signature (sync or async)
            wallet_address: Wallet public address (builds the challenge)

        Returns:
            DerivedKeyPair (caller wipes, or uses it as a context manager)
        """
        challenge = self.challenge_for(wallet_address)
        signature = await self.request_signature(sign, challenge)
        return derive_keypair_from_signature(
            signature, scheme_id=self._scheme.id, address=challenge.address
        )

    async def probe_determinism(self, sign: SignCallable, wallet_address: str) -> bool:
        """
        Sign the challenge twice and compare.

        Returns:
            True if both signatures match

        Raises:
            NonDeterministicSignerError: If the signatures differ
        """
        challenge = self.challenge_for(wallet_address)
        first = await self.request_signature(sign, challenge)
        second = await self.request_signature(sign, challenge)
        if not _ct_eq(first, second):
            raise NonDeterministicSignerError(
                f"Signer for {challenge.address} produced different signatures "
                f"for the same challenge; derived keys would not be reproducible"
            )
        return True
