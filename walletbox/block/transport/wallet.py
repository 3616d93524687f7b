# walletbox/block/transport/wallet.py
"""
WalletBox Block Transport: Wallet-to-Wallet Messaging

End-to-end message flow between wallet addresses:

    Sender:
        KeyResolver.resolve(recipient)            -> recipient public key
        EncryptionEngine.encrypt(text, pk)        -> Envelope
        MessageStore.append(StoredMessage)        (retried on StoreError)

    Recipient:
        MessageStore.list_for(address)            -> newest first
        WalletSigner.sign(challenge)              (once per inbox read)
        KeyDerivation -> DerivedKeyPair           (wiped after the read)
        EncryptionEngine.decrypt(envelope, sk)    -> DecodedMessage

Every stored message becomes an InboxEntry with an explicit status.
A message that cannot be decrypted is never shown as empty text.

Usage:
    with StoreClient() as client:
        messenger = WalletMessenger(
            MemoryKeyRegistry(client),
            MemoryMessageStore(client),
        )
        await messenger.publish_key(bob_signer)
        await messenger.send(alice.address, bob.address, "gm")

        for entry in await messenger.read_inbox(bob_signer):
            print(entry.sender, entry.label, entry.text)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from ...cryptography.codec import BINARY_PREVIEW_BYTES, DecodedMessage, EnvelopeCodec
from ...cryptography.common import (
    ByteLike,
    DecryptionFailedError,
    EncodingError,
    InvalidEnvelopeError,
    KeyMismatchError,
    fingerprint,
    normalize_address,
)
from ...cryptography.core import EncryptionEngine
from ...cryptography.kdf import DEFAULT_SCHEME_ID, DerivedKeyPair, KeyDerivation
from ..adapters.base import WalletSigner
from ..mailbox.store import MessageStore
from ..registry.key_store import KeyRegistry, RecipientKeyRecord
from ..registry.resolver import KeyResolver, NoKeyFoundError
from ..storage import StoreClosedError, StoreError
from ..wire.record import StoredMessage

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class MessengerConfig:
    """
    Messenger settings.

    Attributes:
        scheme_id: Key derivation scheme
        max_retries: Store append retries after the first attempt
        retry_delay: Base backoff in seconds (delay * 2**attempt)
        signing_timeout: Seconds to wait for the wallet (None = unbounded)
        check_public_key: Compare derived key with the published key on read
        binary_preview_bytes: Bytes shown in binary previews
    """
    scheme_id: int = DEFAULT_SCHEME_ID
    max_retries: int = 3
    retry_delay: float = 1.0
    signing_timeout: Optional[float] = None
    check_public_key: bool = True
    binary_preview_bytes: int = BINARY_PREVIEW_BYTES

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")


# =============================================================================
# Exceptions
# =============================================================================

class MessengerError(Exception):
    """Base exception for messenger operations."""
    pass


class RecipientKeyNotFoundError(MessengerError):
    """Recipient has not published a derived key yet."""
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Recipient {address} has not published a messaging key")


# =============================================================================
# Inbox Entries
# =============================================================================

class DecryptStatus(Enum):
    """Outcome of opening one stored message."""
    DECRYPTED = "decrypted"
    KEY_MISMATCH = "key_mismatch"
    DECRYPTION_FAILED = "decryption_failed"
    INVALID_ENVELOPE = "invalid_envelope"


STATUS_LABELS: Dict[DecryptStatus, str] = {
    DecryptStatus.DECRYPTED: "decrypted",
    DecryptStatus.KEY_MISMATCH: "could not decrypt: wrong key",
    DecryptStatus.DECRYPTION_FAILED: "could not decrypt: corrupted or not for this key",
    DecryptStatus.INVALID_ENVELOPE: "could not decrypt: malformed message",
}


@dataclass(frozen=True)
class InboxEntry:
    """
    One inbox message and what happened when it was opened.

    Attributes:
        message_id: Stored message id
        sender: Sender address
        created_at: ISO-8601 insert time
        status: DecryptStatus
        decoded: DecodedMessage when status is DECRYPTED
        error: The exception that prevented decryption
    """
    message_id: str
    sender: str
    created_at: str
    status: DecryptStatus
    decoded: Optional[DecodedMessage] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status is DecryptStatus.DECRYPTED

    @property
    def label(self) -> str:
        return STATUS_LABELS[self.status]

    @property
    def text(self) -> Optional[str]:
        """Message text, or None when the message could not be opened."""
        return self.decoded.text if self.decoded is not None else None


# =============================================================================
# WalletMessenger
# =============================================================================

class WalletMessenger:
    """
    Sends and reads encrypted messages between wallet addresses.
    """

    def __init__(
        self,
        registry: KeyRegistry,
        store: MessageStore,
        config: Optional[MessengerConfig] = None,
        resolver: Optional[KeyResolver] = None,
        engine: Optional[EncryptionEngine] = None,
    ):
        """
        Args:
            registry: Recipient key registry
            store: Message store
            config: MessengerConfig (default settings if None)
            resolver: KeyResolver over registry (uncached if None)
            engine: EncryptionEngine (built from config if None)
        """
        self.config = config or MessengerConfig()
        self._registry = registry
        self._store = store
        self._resolver = resolver or KeyResolver(registry)
        self._engine = engine or EncryptionEngine(
            EnvelopeCodec(preview_bytes=self.config.binary_preview_bytes)
        )
        self._kdf = KeyDerivation(
            scheme_id=self.config.scheme_id,
            signing_timeout=self.config.signing_timeout,
        )

    @property
    def kdf(self) -> KeyDerivation:
        return self._kdf

    @property
    def engine(self) -> EncryptionEngine:
        return self._engine

    # =========================================================================
    # Keys
    # =========================================================================

    async def unlock(self, signer: WalletSigner) -> DerivedKeyPair:
        """Derive the signer's key pair (one signing prompt)."""
        return await self._kdf.derive(signer.sign, signer.address)

    async def publish_key(self, signer: WalletSigner) -> RecipientKeyRecord:
        """
        Derive and publish the signer's public key (first use or regenerate).

        Raises:
            SigningUnavailableError: Wallet refused or could not sign
            MalformedSignatureError: Wallet returned an unusable signature
        """
        with await self.unlock(signer) as keypair:
            record = self._registry.put(
                signer.address, keypair.public_key, scheme_id=keypair.scheme_id
            )
        self._resolver.invalidate(signer.address)
        return record

    # =========================================================================
    # Sending
    # =========================================================================

    async def send(
        self,
        sender_address: str,
        recipient_address: str,
        content: Union[str, ByteLike],
    ) -> StoredMessage:
        """
        Encrypt content for the recipient and store it.

        Args:
            sender_address: Sender wallet address
            recipient_address: Recipient wallet address
            content: Text, or bytes for a binary record

        Raises:
            RecipientKeyNotFoundError: Recipient never published a key
            StoreClosedError: Store client already closed (not retried)
            StoreError: Store still failing after max_retries
        """
        recipient = normalize_address(recipient_address)
        try:
            public_key = self._resolver.resolve(recipient)
        except NoKeyFoundError as e:
            raise RecipientKeyNotFoundError(recipient) from e

        if isinstance(content, str):
            envelope = self._engine.encrypt(content, public_key)
        else:
            envelope = self._engine.encrypt_bytes(content, public_key)

        message = StoredMessage.create(sender_address, recipient, envelope)
        return await self._append_with_retry(message)

    async def _append_with_retry(self, message: StoredMessage) -> StoredMessage:
        attempt = 0
        while True:
            try:
                return self._store.append(message)
            except StoreClosedError:
                logger.error(f"Store closed; not retrying message {message.id}")
                raise
            except StoreError as e:
                if attempt >= self.config.max_retries:
                    logger.error(
                        f"Giving up storing message {message.id} after {attempt + 1} attempts: {e}"
                    )
                    raise
                delay = self.config.retry_delay * (2 ** attempt)
                logger.warning(
                    f"Store append failed ({e}); retry {attempt + 1}/{self.config.max_retries} "
                    f"in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                attempt += 1

    # =========================================================================
    # Reading
    # =========================================================================

    def open_message(
        self,
        message: StoredMessage,
        keypair: DerivedKeyPair,
        expected_public_key: Optional[bytes] = None,
    ) -> InboxEntry:
        """Decrypt one stored message into an InboxEntry (never raises on bad data)."""
        entry = dict(
            message_id=message.id,
            sender=message.sender_address,
            created_at=message.created_at,
        )
        try:
            decoded = self._engine.decrypt_with(
                message.envelope, keypair, expected_public_key=expected_public_key
            )
        except KeyMismatchError as e:
            logger.warning(f"Message {message.id}: {e}")
            return InboxEntry(status=DecryptStatus.KEY_MISMATCH, error=e, **entry)
        except DecryptionFailedError as e:
            logger.warning(f"Message {message.id}: decryption failed")
            return InboxEntry(status=DecryptStatus.DECRYPTION_FAILED, error=e, **entry)
        except InvalidEnvelopeError as e:
            logger.warning(f"Message {message.id}: {e}")
            return InboxEntry(status=DecryptStatus.INVALID_ENVELOPE, error=e, **entry)
        return InboxEntry(status=DecryptStatus.DECRYPTED, decoded=decoded, **entry)

    def _open_row(
        self,
        row: Mapping[str, Any],
        keypair: DerivedKeyPair,
        expected_public_key: Optional[bytes],
    ) -> InboxEntry:
        try:
            message = StoredMessage.from_row(row)
        except EncodingError as e:
            logger.warning(f"Message {row.get('id')}: {e}")
            return InboxEntry(
                message_id=str(row.get("id", "")),
                sender=str(row.get("from_address", "")),
                created_at=str(row.get("created_at", "")),
                status=DecryptStatus.INVALID_ENVELOPE,
                error=e,
            )
        return self.open_message(message, keypair, expected_public_key)

    def _expected_public_key(self, keypair: DerivedKeyPair) -> Optional[bytes]:
        if not self.config.check_public_key or keypair.address is None:
            return None
        record = self._registry.get(keypair.address)
        if record is None:
            return None
        return record.derived_public_key

    async def read_inbox(self, signer: WalletSigner, limit: Optional[int] = None) -> List[InboxEntry]:
        """
        Fetch and decrypt the signer's messages, newest first.

        The wallet is asked to sign once; the derived key pair is wiped
        before returning.

        Raises:
            SigningUnavailableError: Wallet refused or could not sign
        """
        rows = self._store.list_rows(signer.address, limit=limit)
        if not rows:
            return []

        with await self.unlock(signer) as keypair:
            expected = self._expected_public_key(keypair)
            if expected is not None and expected != keypair.public_key:
                logger.warning(
                    f"Published key {fingerprint(expected)} for {keypair.address} does not "
                    f"match derived key {fingerprint(keypair.public_key)}"
                )
            entries = [self._open_row(row, keypair, expected) for row in rows]

        failed = sum(1 for e in entries if not e.ok)
        logger.info(
            f"Inbox for {normalize_address(signer.address)}: {len(entries)} messages, "
            f"{failed} could not be decrypted"
        )
        return entries

