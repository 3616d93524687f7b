# walletbox/block/wire/record.py
"""
WalletBox Block Wire: Stored Message Rows

Row format of the append-only messages table, with the column checks
the shared database enforces applied on both write and read.

Row Format (table "messages"):
    id                   : UUID4 text
    from_address         : sender wallet address (non-empty)
    to_address           : recipient wallet address (non-empty)
    ciphertext           : padded base64, decodes to > 16 bytes
    nonce                : padded base64, decodes to 24 bytes
    ephemeral_public_key : padded base64, decodes to 32 bytes
    created_at           : ISO-8601 UTC

Usage:
    message = StoredMessage.create(sender, recipient, envelope)
    row = message.to_row()
    message = StoredMessage.from_row(row)   # validates every column
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from ...cryptography.codec import utc_timestamp
from ...cryptography.common import (
    EncodingError,
    NONCE_SIZE,
    PUBLIC_KEY_SIZE,
    TAG_SIZE,
    b64decode,
    is_base64,
    normalize_address,
)
from ...cryptography.core import Envelope

MESSAGES_TABLE = "messages"

ROW_COLUMNS = (
    "id",
    "from_address",
    "to_address",
    "ciphertext",
    "nonce",
    "ephemeral_public_key",
    "created_at",
)


# =============================================================================
# Exceptions
# =============================================================================

class RowValidationError(EncodingError):
    """Stored row violates a column check."""
    def __init__(self, column: str, reason: str):
        self.column = column
        self.reason = reason
        super().__init__(f"Invalid {column}: {reason}")


# =============================================================================
# Column Validators
# =============================================================================

def _decoded_length(text: Any) -> int:
    if not is_base64(text):
        return -1
    return len(b64decode(text))


def validate_nonce(text: Any) -> bool:
    """Nonce column: padded base64 of exactly 24 bytes."""
    return _decoded_length(text) == NONCE_SIZE


def validate_public_key(text: Any) -> bool:
    """Public key column: padded base64 of exactly 32 bytes."""
    return _decoded_length(text) == PUBLIC_KEY_SIZE


def validate_ciphertext(text: Any) -> bool:
    """Ciphertext column: padded base64 longer than the auth tag."""
    return _decoded_length(text) > TAG_SIZE


def _validate_address(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def validate_message_row(row: Mapping[str, Any]) -> None:
    """
    Apply every column check to a messages row.

    Raises:
        RowValidationError: On the first failing column
    """
    for column in ROW_COLUMNS:
        if row.get(column) in (None, ""):
            raise RowValidationError(column, "missing")
    if not _validate_address(row["from_address"]):
        raise RowValidationError("from_address", "empty address")
    if not _validate_address(row["to_address"]):
        raise RowValidationError("to_address", "empty address")
    if not validate_ciphertext(row["ciphertext"]):
        raise RowValidationError("ciphertext", "not base64 or shorter than tag")
    if not validate_nonce(row["nonce"]):
        raise RowValidationError("nonce", f"not base64 of {NONCE_SIZE} bytes")
    if not validate_public_key(row["ephemeral_public_key"]):
        raise RowValidationError(
            "ephemeral_public_key", f"not base64 of {PUBLIC_KEY_SIZE} bytes"
        )


# =============================================================================
# StoredMessage
# =============================================================================

@dataclass(frozen=True)
class StoredMessage:
    """
    One stored message. Never mutated after insert.

    Attributes:
        sender_address: Normalized sender wallet address
        recipient_address: Normalized recipient wallet address
        envelope: Encrypted envelope
        id: UUID4 text
        created_at: ISO-8601 UTC insert time
    """
    sender_address: str
    recipient_address: str
    envelope: Envelope
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=utc_timestamp)

    @classmethod
    def create(cls, sender_address: str, recipient_address: str, envelope: Envelope) -> StoredMessage:
        """New message with normalized addresses, fresh id and timestamp."""
        return cls(
            sender_address=normalize_address(sender_address),
            recipient_address=normalize_address(recipient_address),
            envelope=envelope.validate(),
        )

    def to_row(self) -> Dict[str, Any]:
        """Row dict for the messages table (validated)."""
        fields = self.envelope.to_dict()
        row = {
            "id": self.id,
            "from_address": self.sender_address,
            "to_address": self.recipient_address,
            "ciphertext": fields["ciphertext"],
            "nonce": fields["nonce"],
            "ephemeral_public_key": fields["ephemeralPublicKey"],
            "created_at": self.created_at,
        }
        validate_message_row(row)
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> StoredMessage:
        """
        Parse and validate a messages row.

        Raises:
            RowValidationError: If any column check fails
        """
        validate_message_row(row)
        envelope = Envelope(
            ciphertext=b64decode(row["ciphertext"], "ciphertext"),
            nonce=b64decode(row["nonce"], "nonce"),
            ephemeral_public_key=b64decode(row["ephemeral_public_key"], "ephemeral_public_key"),
        )
        return cls(
            sender_address=row["from_address"],
            recipient_address=row["to_address"],
            envelope=envelope,
            id=str(row["id"]),
            created_at=str(row["created_at"]),
        )
