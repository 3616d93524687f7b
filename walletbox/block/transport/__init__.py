# walletbox/block/transport/__init__.py
"""
WalletBox Block Transport

Wallet-to-wallet message flow over the key registry and message store.

Components:
    WalletMessenger  - publish_key / send / read_inbox
    MessengerConfig  - Retry, timeout, and decode settings
    InboxEntry       - One opened message with an explicit DecryptStatus
"""

from .wallet import (
    WalletMessenger,
    MessengerConfig,
    InboxEntry,
    DecryptStatus,
    STATUS_LABELS,
    MessengerError,
    RecipientKeyNotFoundError,
)

__all__ = [
    "WalletMessenger",
    "MessengerConfig",
    "InboxEntry",
    "DecryptStatus",
    "STATUS_LABELS",
    "MessengerError",
    "RecipientKeyNotFoundError",
]
