# tests/test_codec.py
"""
WalletBox Payload Codec Tests

Categories:
  C1. Versioned records
  C2. Legacy text tolerance
  C3. Binary tolerance
  C4. Strategy ordering
"""

from __future__ import annotations

import json
import logging

import pytest

from walletbox.cryptography.codec import (
    BINARY_PREVIEW_BYTES,
    ContentType,
    DecodedMessage,
    EnvelopeCodec,
    PayloadKind,
    PlaintextRecord,
    binary_preview,
    decode_binary,
)


@pytest.fixture
def codec() -> EnvelopeCodec:
    return EnvelopeCodec()


# =============================================================================
# C1. Versioned Records
# =============================================================================

def test_c1_text_record_decodes_to_payload(codec):
    data = codec.encode(PlaintextRecord.text("hello", timestamp="2025-01-20T00:00:00+00:00"))
    decoded = codec.decode_payload(data)

    assert decoded.kind is PayloadKind.RECORD
    assert decoded.text == "hello"
    assert decoded.record.version == 1
    assert decoded.record.timestamp == "2025-01-20T00:00:00+00:00"
    assert not decoded.is_legacy
    assert decoded.raw == data


def test_c1_unicode_text(codec):
    message = "héllo 🌍 こんにちは"
    decoded = codec.decode_payload(PlaintextRecord.text(message).to_bytes())
    assert decoded.text == message


def test_c1_empty_text_is_not_confused_with_failure(codec):
    decoded = codec.decode_payload(PlaintextRecord.text("").to_bytes())
    assert decoded.kind is PayloadKind.RECORD
    assert decoded.text == ""


def test_c1_record_layout():
    record = PlaintextRecord(version=1, payload=b"hi")
    assert json.loads(record.to_bytes()) == {"version": 1, "type": "text", "payload": "hi"}

    stamped = PlaintextRecord.text("hi")
    assert "timestamp" in json.loads(stamped.to_bytes())


def test_c1_text_requires_str():
    with pytest.raises(TypeError):
        PlaintextRecord.text(b"bytes")


def test_c1_binary_record(codec):
    data = codec.encode(PlaintextRecord.binary(b"\x00\x01\xff"))
    decoded = codec.decode_payload(data)

    assert decoded.kind is PayloadKind.RECORD
    assert decoded.is_binary
    assert decoded.record.payload == b"\x00\x01\xff"
    assert decoded.text.startswith("[Binary data: 3 bytes] ")


def test_c1_binary_record_as_text_refused():
    with pytest.raises(ValueError):
        PlaintextRecord.binary(b"\x00").as_text()


# =============================================================================
# C2. Legacy Text Tolerance
# =============================================================================

@pytest.mark.parametrize("raw", [
    b"plain old message",
    b'{"foo": 1}',
    b'{"version": 0, "payload": "x"}',
    b'{"version": true, "payload": "x"}',
    b'{"version": 1, "payload": 5}',
    b'{"version": 1, "type": "video", "payload": "x"}',
    b'{"version": 1, "type": "binary", "payload": "not base64!"}',
    b'[1, 2, 3]',
    b'"just a string"',
])
def test_c2_non_record_utf8_is_legacy_text(codec, raw):
    decoded = codec.decode_payload(raw)
    assert decoded.kind is PayloadKind.LEGACY_TEXT
    assert decoded.text == raw.decode("utf-8")
    assert decoded.record.is_legacy
    assert decoded.is_legacy


def test_c2_lone_surrogate_falls_back_to_text(codec):
    raw = b'{"version": 1, "payload": "\\ud800"}'
    decoded = codec.decode_payload(raw)
    assert decoded.kind is PayloadKind.LEGACY_TEXT


def test_c2_deeply_nested_json_does_not_raise(codec):
    raw = b"[" * 100000 + b"]" * 100000
    decoded = codec.decode_payload(raw)
    assert decoded.kind is PayloadKind.LEGACY_TEXT


def test_c2_deep_nesting_with_wallet_stack_loaded(codec):
    # eth_account raises the interpreter recursion limit on import
    import eth_account  # noqa: F401

    nested_object = b'{"a":' * 100000 + b"1" + b"}" * 100000
    nested_array = b'{"version": 1, "payload": "x", "extra": ' + b"[" * 100000 + b"]" * 100000 + b"}"
    for raw in (nested_object, nested_array):
        decoded = codec.decode_payload(raw)
        assert decoded.kind is PayloadKind.LEGACY_TEXT
        assert decoded.raw == raw


def test_c2_brackets_inside_strings_do_not_count(codec):
    text = "[[[[[[[[[[ {{{{{{{{{{ \\\" ]]"
    raw = PlaintextRecord.text(text).to_bytes()
    decoded = codec.decode_payload(raw)
    assert decoded.kind is PayloadKind.RECORD
    assert decoded.text == text


def test_c2_record_nested_past_depth_cap_is_legacy_text(codec):
    raw = b'{"version": 1, "payload": "x", "meta": ' + b"[" * 8 + b"]" * 8 + b"}"
    assert codec.decode_payload(raw).kind is PayloadKind.LEGACY_TEXT

    shallow = b'{"version": 1, "payload": "x", "meta": ' + b"[" * 7 + b"]" * 7 + b"}"
    assert codec.decode_payload(shallow).kind is PayloadKind.RECORD


def test_c2_legacy_decode_is_logged(codec, caplog):
    with caplog.at_level(logging.WARNING, logger="walletbox.cryptography.codec"):
        codec.decode_payload(b"old style")
    assert any("decode_legacy_text" in r.getMessage() for r in caplog.records)


# =============================================================================
# C3. Binary Tolerance
# =============================================================================

def test_c3_invalid_utf8_scenario(codec):
    decoded = codec.decode_payload(bytes([0xFF, 0xFE, 0x00, 0x01]))

    assert decoded.kind is PayloadKind.BINARY
    assert decoded.is_binary
    assert decoded.text == "[Binary data: 4 bytes] //4AAQ=="
    assert decoded.raw == bytes([0xFF, 0xFE, 0x00, 0x01])


def test_c3_preview_is_bounded(codec):
    data = bytes([0xFF]) * 1000
    decoded = codec.decode_payload(data)

    assert decoded.text.startswith("[Binary data: 1000 bytes] ")
    assert decoded.text.endswith("...")
    assert len(decoded.text) < 100


def test_c3_preview_length_configurable():
    codec = EnvelopeCodec(preview_bytes=3)
    decoded = codec.decode_payload(bytes([0xFF, 0xFE, 0xFD, 0xFC]))
    assert decoded.text == "[Binary data: 4 bytes] //79..."


def test_c3_binary_preview_helper():
    assert binary_preview(b"") == "[Binary data: 0 bytes] "
    assert BINARY_PREVIEW_BYTES == 32


def test_c3_none_is_programmer_error(codec):
    with pytest.raises(TypeError):
        codec.decode_payload(None)


def test_c3_non_bytes_is_programmer_error(codec):
    with pytest.raises(TypeError):
        codec.decode_payload("text")


def test_c3_invalid_preview_size():
    with pytest.raises(ValueError):
        EnvelopeCodec(preview_bytes=0)


# =============================================================================
# C4. Strategy Ordering
# =============================================================================

def test_c4_first_success_short_circuits():
    calls = []

    def first(data, preview):
        calls.append("first")
        return DecodedMessage(
            kind=PayloadKind.RECORD,
            text="from first",
            record=PlaintextRecord(version=1, payload=data),
            raw=data,
        )

    def second(data, preview):
        calls.append("second")
        return None

    codec = EnvelopeCodec(strategies=[first, second])
    assert codec.decode_payload(b"x").text == "from first"
    assert calls == ["first"]


def test_c4_attempts_are_lazy(codec):
    attempts = codec.attempts(PlaintextRecord.text("hi").to_bytes())
    strategy, result = next(attempts)
    assert strategy.__name__ == "decode_versioned_record"
    assert result is not None


def test_c4_all_custom_strategies_missing_falls_back_to_binary():
    codec = EnvelopeCodec(strategies=[lambda data, preview: None])
    decoded = codec.decode_payload(b"\xff")
    assert decoded.kind is PayloadKind.BINARY


def test_c4_decode_binary_record_metadata():
    decoded = decode_binary(b"\x01", 32)
    assert decoded.record.content_type is ContentType.BINARY
    assert decoded.record.version == 0
