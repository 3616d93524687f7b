# tests/test_wire.py
"""
WalletBox Stored Message Row Tests

Categories:
  W1. Column validators
  W2. StoredMessage rows
"""

from __future__ import annotations

import uuid

import pytest

from walletbox.block.wire import (
    ROW_COLUMNS,
    RowValidationError,
    StoredMessage,
    validate_ciphertext,
    validate_message_row,
    validate_nonce,
    validate_public_key,
)
from walletbox.cryptography import EncodingError, InvalidEnvelopeError
from walletbox.cryptography.common import b64encode, is_base64
from walletbox.cryptography.core import Envelope

from .conftest import ALICE, BOB


@pytest.fixture
def message(engine, keypair) -> StoredMessage:
    return StoredMessage.create(ALICE, BOB, engine.encrypt("row test", keypair.public_key))


# =============================================================================
# W1. Column Validators
# =============================================================================

def test_w1_is_base64():
    assert is_base64("")
    assert is_base64("AAAA")
    assert is_base64("AA==")
    assert is_base64("AAA=")
    assert not is_base64("AAA")
    assert not is_base64("AA=A")
    assert not is_base64("AA AA")
    assert not is_base64(None)
    assert not is_base64(b"AAAA")


def test_w1_nonce_column():
    assert validate_nonce(b64encode(b"\x00" * 24))
    assert not validate_nonce(b64encode(b"\x00" * 23))
    assert not validate_nonce("not base64")


def test_w1_public_key_column():
    assert validate_public_key(b64encode(b"\x00" * 32))
    assert not validate_public_key(b64encode(b"\x00" * 24))
    assert not validate_public_key(None)


def test_w1_ciphertext_column():
    assert validate_ciphertext(b64encode(b"\x00" * 17))
    assert not validate_ciphertext(b64encode(b"\x00" * 16))


# =============================================================================
# W2. StoredMessage Rows
# =============================================================================

def test_w2_row_columns(message):
    row = message.to_row()
    assert tuple(row) == ROW_COLUMNS
    assert row["from_address"] == ALICE
    assert row["to_address"] == BOB
    uuid.UUID(row["id"])


def test_w2_addresses_normalized(engine, keypair):
    envelope = engine.encrypt("x", keypair.public_key)
    message = StoredMessage.create(ALICE.upper().replace("0X", "0x"), BOB, envelope)
    assert message.sender_address == StoredMessage.create(ALICE, BOB, envelope).sender_address


def test_w2_row_parses_back(engine, keypair, message):
    restored = StoredMessage.from_row(message.to_row())
    assert restored == message
    assert engine.decrypt(restored.envelope, keypair.secret_key).text == "row test"


def test_w2_ids_unique(engine, keypair):
    envelope = engine.encrypt("x", keypair.public_key)
    ids = {StoredMessage.create(ALICE, BOB, envelope).id for _ in range(20)}
    assert len(ids) == 20


@pytest.mark.parametrize("column,value", [
    ("id", None),
    ("from_address", ""),
    ("to_address", "   "),
    ("ciphertext", "@@@@"),
    ("nonce", b64encode(b"\x00" * 12)),
    ("ephemeral_public_key", b64encode(b"\x00" * 33)),
    ("created_at", None),
])
def test_w2_invalid_row(message, column, value):
    row = message.to_row()
    row[column] = value
    with pytest.raises(RowValidationError) as info:
        StoredMessage.from_row(row)
    assert info.value.column == column
    assert isinstance(info.value, EncodingError)


def test_w2_missing_column(message):
    row = message.to_row()
    del row["nonce"]
    with pytest.raises(RowValidationError):
        validate_message_row(row)


def test_w2_create_validates_envelope():
    bad = Envelope(ciphertext=b"\x00" * 40, nonce=b"\x00" * 10, ephemeral_public_key=b"\x00" * 32)
    with pytest.raises(InvalidEnvelopeError):
        StoredMessage.create(ALICE, BOB, bad)
