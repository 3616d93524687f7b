# walletbox/block/mailbox/store.py
"""
WalletBox Block Mailbox: Message Store

Append-only storage of encrypted messages. Records are never mutated
or deleted through this interface.

Usage:
    store = MemoryMessageStore(client)
    store.append(StoredMessage.create(sender, recipient, envelope))
    for message in store.list_for(recipient):   # newest first
        ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ...cryptography.common import normalize_address
from ..storage import StoreClient
from ..wire.record import MESSAGES_TABLE, StoredMessage

logger = logging.getLogger(__name__)


def _addressed_to(row: Dict[str, Any], recipient: str) -> bool:
    """Match on the normalized to_address; rows written by other clients may differ in casing."""
    try:
        return normalize_address(row.get("to_address")) == recipient
    except ValueError:
        # unparseable address belongs to nobody
        return False


# =============================================================================
# Exceptions
# =============================================================================

class MessageStoreError(Exception):
    """Message store rejected an operation."""
    pass


# =============================================================================
# MessageStore
# =============================================================================

class MessageStore(ABC):
    """Abstract append-only message store."""

    @abstractmethod
    def append(self, message: StoredMessage) -> StoredMessage:
        """
        Store a message.

        Raises:
            MessageStoreError: If a message with the same id exists
            RowValidationError: If the row fails column checks
            StoreError: If the backend is unavailable (retryable)
        """
        pass

    @abstractmethod
    def list_rows(self, address: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Raw rows addressed to address, newest first."""
        pass

    def list_for(self, address: str, limit: Optional[int] = None) -> List[StoredMessage]:
        """
        Messages addressed to address, newest first.

        Raises:
            RowValidationError: If a stored row is corrupt
        """
        return [StoredMessage.from_row(row) for row in self.list_rows(address, limit)]


class MemoryMessageStore(MessageStore):
    """MessageStore on a shared StoreClient."""

    def __init__(self, client: StoreClient, table: str = MESSAGES_TABLE):
        self._client = client
        self._table = table

    def append(self, message: StoredMessage) -> StoredMessage:
        if self._client.insert_unique(self._table, message.to_row(), key="id") is None:
            raise MessageStoreError(f"Message {message.id} already stored")
        logger.info(
            f"Stored message {message.id} from {message.sender_address} "
            f"to {message.recipient_address}"
        )
        return message

    def list_rows(self, address: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        recipient = normalize_address(address)
        rows = self._client.select(self._table, where=lambda r: _addressed_to(r, recipient))
        # latest insert first among equal timestamps
        rows.reverse()
        rows.sort(key=lambda r: str(r.get("created_at", "")), reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def __len__(self) -> int:
        return self._client.count(self._table)
