# walletbox/block/registry/key_store.py
"""
WalletBox Block Registry: Recipient Key Store

Persists each wallet's derived public key, one row per wallet,
upserted whenever the wallet re-derives its key (first use or an
explicit regenerate).

Row Format (table "recipient_keys"):
    wallet_address     : normalized address (primary key)
    derived_public_key : padded base64 of the 32-byte X25519 public key
    scheme_id          : derivation scheme the key came from
    created_at         : ISO-8601 UTC

Usage:
    with StoreClient() as client:
        registry = MemoryKeyRegistry(client)
        registry.put(address, keypair.public_key)
        record = registry.get(address)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...cryptography.codec import utc_timestamp
from ...cryptography.common import (
    EncodingError,
    InvalidKeyError,
    PUBLIC_KEY_SIZE,
    b64decode,
    b64encode,
    fingerprint,
    normalize_address,
    require_length,
)
from ...cryptography.kdf import DEFAULT_SCHEME_ID
from ..storage import StoreClient

logger = logging.getLogger(__name__)

RECIPIENT_KEYS_TABLE = "recipient_keys"


# =============================================================================
# Exceptions
# =============================================================================

class RegistryError(Exception):
    """Base registry error."""
    pass


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class RecipientKeyRecord:
    """
    A wallet's published derived public key.

    Attributes:
        wallet_address: Normalized wallet address
        derived_public_key: 32-byte X25519 public key
        created_at: ISO-8601 UTC time of the last upsert
        scheme_id: Derivation scheme that produced the key
    """
    wallet_address: str
    derived_public_key: bytes
    created_at: str
    scheme_id: int = DEFAULT_SCHEME_ID

    def to_row(self) -> Dict[str, Any]:
        return {
            "wallet_address": self.wallet_address,
            "derived_public_key": b64encode(self.derived_public_key),
            "scheme_id": self.scheme_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> RecipientKeyRecord:
        """
        Parse a stored row.

        Raises:
            RegistryError: If the stored key is not a valid 32-byte key
        """
        try:
            key = b64decode(row.get("derived_public_key"), "derived_public_key")
            key = require_length(key, "derived_public_key", PUBLIC_KEY_SIZE)
        except (EncodingError, InvalidKeyError) as e:
            raise RegistryError(
                f"Corrupt key record for {row.get('wallet_address')}: {e}"
            ) from e
        return cls(
            wallet_address=row["wallet_address"],
            derived_public_key=key,
            created_at=row.get("created_at", ""),
            scheme_id=row.get("scheme_id", DEFAULT_SCHEME_ID),
        )


# =============================================================================
# KeyRegistry
# =============================================================================

class KeyRegistry(ABC):
    """Abstract recipient key registry."""

    @abstractmethod
    def get(self, wallet_address: str) -> Optional[RecipientKeyRecord]:
        """Get the record for a wallet, or None if it never published."""
        pass

    @abstractmethod
    def put(
        self,
        wallet_address: str,
        derived_public_key: bytes,
        scheme_id: int = DEFAULT_SCHEME_ID,
    ) -> RecipientKeyRecord:
        """Upsert a wallet's derived public key."""
        pass


class MemoryKeyRegistry(KeyRegistry):
    """
    KeyRegistry on a shared StoreClient.

    Addresses are normalized on every call, so EVM addresses in any
    casing refer to the same row.
    """

    def __init__(self, client: StoreClient, table: str = RECIPIENT_KEYS_TABLE):
        self._client = client
        self._table = table

    def get(self, wallet_address: str) -> Optional[RecipientKeyRecord]:
        address = normalize_address(wallet_address)
        rows = self._client.select(
            self._table, where=lambda r: r["wallet_address"] == address, limit=1
        )
        if not rows:
            return None
        return RecipientKeyRecord.from_row(rows[0])

    def put(
        self,
        wallet_address: str,
        derived_public_key: bytes,
        scheme_id: int = DEFAULT_SCHEME_ID,
    ) -> RecipientKeyRecord:
        """
        Upsert a wallet's derived public key.

        Raises:
            InvalidKeyLengthError: If the key is not 32 bytes
            StoreError: If the store rejects the write
        """
        record = RecipientKeyRecord(
            wallet_address=normalize_address(wallet_address),
            derived_public_key=require_length(
                derived_public_key, "derived_public_key", PUBLIC_KEY_SIZE
            ),
            created_at=utc_timestamp(),
            scheme_id=scheme_id,
        )
        self._client.upsert(self._table, record.to_row(), key="wallet_address")
        logger.info(
            f"Published key {fingerprint(record.derived_public_key)} for {record.wallet_address}"
        )
        return record

    def __len__(self) -> int:
        return self._client.count(self._table)
