# walletbox/block/mailbox/__init__.py
"""
WalletBox Block Mailbox

Append-only message storage.

Components:
    MessageStore       - Abstract append / list_for store
    MemoryMessageStore - Store on a shared StoreClient
"""

from .store import (
    MessageStore,
    MemoryMessageStore,
    MessageStoreError,
)

__all__ = [
    "MessageStore",
    "MemoryMessageStore",
    "MessageStoreError",
]
