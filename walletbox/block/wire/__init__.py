# walletbox/block/wire/__init__.py
"""
WalletBox Block Wire Format

Row format for stored messages and the column checks applied to it.

Modules:
    record: StoredMessage and messages-table validators

Usage:
    from walletbox.block.wire import StoredMessage

    row = StoredMessage.create(sender, recipient, envelope).to_row()
    message = StoredMessage.from_row(row)
"""

from .record import (
    # Main class
    StoredMessage,

    # Constants
    MESSAGES_TABLE,
    ROW_COLUMNS,

    # Validators
    validate_nonce,
    validate_public_key,
    validate_ciphertext,
    validate_message_row,

    # Exceptions
    RowValidationError,
)

__all__ = [
    "StoredMessage",
    "MESSAGES_TABLE",
    "ROW_COLUMNS",
    "validate_nonce",
    "validate_public_key",
    "validate_ciphertext",
    "validate_message_row",
    "RowValidationError",
]
