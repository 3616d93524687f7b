# walletbox/cryptography/codec.py
"""
WalletBox Payload Codec

Plaintext wrapper exchanged between encryption and decryption, and the
ordered decode strategies that turn decrypted bytes back into something
a caller can render.

Record Format (UTF-8 JSON, compact separators):
    {"version": 1, "type": "text", "payload": "hello", "timestamp": "2025-..."}

    type "text"   : payload is the message text
    type "binary" : payload is canonical padded base64 of raw bytes

Decode Order (first success wins, later strategies never run):
    1. versioned record   -> PayloadKind.RECORD
    2. legacy plain text  -> PayloadKind.LEGACY_TEXT
    3. binary preview     -> PayloadKind.BINARY (always succeeds)

Usage:
    codec = EnvelopeCodec()
    data = codec.encode(PlaintextRecord.text("hello"))
    decoded = codec.decode_payload(data)
    decoded.text   # "hello"
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterator, Optional, Sequence, Tuple

from .common import ByteLike, EncodingError, as_bytes, b64decode, b64encode

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

CURRENT_FORMAT_VERSION: int = 1
LEGACY_FORMAT_VERSION: int = 0

BINARY_PREVIEW_BYTES: int = 32
BINARY_LABEL: str = "Binary data"

# Records are flat objects; anything nested deeper is not a record
MAX_RECORD_DEPTH: int = 8


class ContentType(str, Enum):
    """Record payload content type."""
    TEXT = "text"
    BINARY = "binary"


class PayloadKind(Enum):
    """Which decode strategy produced a result."""
    RECORD = "record"
    LEGACY_TEXT = "legacy_text"
    BINARY = "binary"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class PlaintextRecord:
    """
    Versioned wrapper around a message before encryption.

    Attributes:
        version: Format version (LEGACY_FORMAT_VERSION for unwrapped payloads)
        payload: Message bytes (UTF-8 text for ContentType.TEXT)
        timestamp: Optional ISO-8601 creation time
        content_type: TEXT or BINARY
    """
    version: int
    payload: bytes
    timestamp: Optional[str] = None
    content_type: ContentType = ContentType.TEXT

    @classmethod
    def text(
        cls,
        message: str,
        timestamp: Optional[str] = None,
        version: int = CURRENT_FORMAT_VERSION,
    ) -> PlaintextRecord:
        """Create a text record; timestamp defaults to now (UTC)."""
        if not isinstance(message, str):
            raise TypeError(f"message must be str, got {type(message).__name__}")
        return cls(
            version=version,
            payload=message.encode("utf-8"),
            timestamp=timestamp if timestamp is not None else utc_timestamp(),
            content_type=ContentType.TEXT,
        )

    @classmethod
    def binary(
        cls,
        data: ByteLike,
        timestamp: Optional[str] = None,
        version: int = CURRENT_FORMAT_VERSION,
    ) -> PlaintextRecord:
        """Create a binary record; timestamp defaults to now (UTC)."""
        return cls(
            version=version,
            payload=as_bytes(data, "data"),
            timestamp=timestamp if timestamp is not None else utc_timestamp(),
            content_type=ContentType.BINARY,
        )

    @property
    def is_legacy(self) -> bool:
        return self.version == LEGACY_FORMAT_VERSION

    def as_text(self) -> str:
        """Payload as text (TEXT records only)."""
        if self.content_type is not ContentType.TEXT:
            raise ValueError(f"Cannot read {self.content_type.value} payload as text")
        return self.payload.decode("utf-8")

    def to_dict(self) -> dict:
        """JSON-ready dict."""
        if self.content_type is ContentType.TEXT:
            payload = self.payload.decode("utf-8")
        else:
            payload = b64encode(self.payload)
        data = {
            "version": self.version,
            "type": self.content_type.value,
            "payload": payload,
        }
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        return data

    def to_bytes(self) -> bytes:
        """Serialize to compact UTF-8 JSON."""
        return json.dumps(
            self.to_dict(), ensure_ascii=False, separators=(",", ":")
        ).encode("utf-8")


@dataclass(frozen=True)
class DecodedMessage:
    """
    Human-readable result of decoding decrypted bytes.

    Attributes:
        kind: Strategy that produced the result
        text: Renderable text (message text or a labeled binary preview)
        record: Record view of the payload (legacy payloads get version 0)
        raw: Decrypted bytes exactly as received
    """
    kind: PayloadKind
    text: str
    record: PlaintextRecord
    raw: bytes

    @property
    def is_binary(self) -> bool:
        return self.record.content_type is ContentType.BINARY

    @property
    def is_legacy(self) -> bool:
        return self.kind is not PayloadKind.RECORD


# =============================================================================
# Helpers
# =============================================================================

def utc_timestamp() -> str:
    """Current time as ISO-8601 UTC text."""
    return datetime.now(timezone.utc).isoformat()


def binary_preview(data: bytes, preview_bytes: int = BINARY_PREVIEW_BYTES) -> str:
    """
    Bounded, reversible text rendering of raw bytes.

    Format: "[Binary data: <n> bytes] <base64 of first preview_bytes>"
    followed by "..." when truncated.
    """
    head = data[:preview_bytes]
    suffix = "..." if len(data) > preview_bytes else ""
    return f"[{BINARY_LABEL}: {len(data)} bytes] {b64encode(head)}{suffix}"


def _utf8(data: bytes) -> Optional[str]:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def _nesting_within(text: str, max_depth: int) -> bool:
    """Bracket nesting depth outside string literals is at most max_depth."""
    depth = 0
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
            if depth > max_depth:
                return False
        elif ch in "]}":
            depth -= 1
    return True


def _parse_record(text: str) -> Optional[PlaintextRecord]:
    """Return the record if text is the versioned JSON schema, else None."""
    # json.loads recursion is bounded by the interpreter limit, which
    # dependencies may raise past what the C stack can hold
    if not text.lstrip().startswith("{"):
        return None
    if not _nesting_within(text, MAX_RECORD_DEPTH):
        return None
    try:
        obj = json.loads(text)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None

    version = obj.get("version")
    payload = obj.get("payload")
    timestamp = obj.get("timestamp")
    if isinstance(version, bool) or not isinstance(version, int) or version < CURRENT_FORMAT_VERSION:
        return None
    if not isinstance(payload, str):
        return None
    if timestamp is not None and not isinstance(timestamp, str):
        return None

    try:
        content_type = ContentType(obj.get("type", ContentType.TEXT.value))
    except ValueError:
        return None

    if content_type is ContentType.BINARY:
        try:
            payload_bytes = b64decode(payload, "payload")
        except EncodingError:
            return None
    else:
        try:
            payload_bytes = payload.encode("utf-8")
        except UnicodeEncodeError:
            # lone surrogate escapes
            return None

    return PlaintextRecord(
        version=version,
        payload=payload_bytes,
        timestamp=timestamp,
        content_type=content_type,
    )


# =============================================================================
# Decode Strategies
# =============================================================================

DecodeStrategy = Callable[[bytes, int], Optional[DecodedMessage]]


def decode_versioned_record(data: bytes, preview_bytes: int) -> Optional[DecodedMessage]:
    """Strategy 1: UTF-8 JSON matching the versioned record schema."""
    text = _utf8(data)
    if text is None:
        return None
    record = _parse_record(text)
    if record is None:
        return None
    if record.content_type is ContentType.BINARY:
        rendered = binary_preview(record.payload, preview_bytes)
    else:
        rendered = record.as_text()
    return DecodedMessage(kind=PayloadKind.RECORD, text=rendered, record=record, raw=data)


def decode_legacy_text(data: bytes, preview_bytes: int) -> Optional[DecodedMessage]:
    """Strategy 2: valid UTF-8 that is not a record (legacy plain-text message)."""
    text = _utf8(data)
    if text is None:
        return None
    record = PlaintextRecord(version=LEGACY_FORMAT_VERSION, payload=data)
    return DecodedMessage(kind=PayloadKind.LEGACY_TEXT, text=text, record=record, raw=data)


def decode_binary(data: bytes, preview_bytes: int) -> Optional[DecodedMessage]:
    """Strategy 3: anything else, rendered as a labeled preview."""
    record = PlaintextRecord(
        version=LEGACY_FORMAT_VERSION,
        payload=data,
        content_type=ContentType.BINARY,
    )
    return DecodedMessage(
        kind=PayloadKind.BINARY,
        text=binary_preview(data, preview_bytes),
        record=record,
        raw=data,
    )


DEFAULT_STRATEGIES: Tuple[DecodeStrategy, ...] = (
    decode_versioned_record,
    decode_legacy_text,
    decode_binary,
)


# =============================================================================
# EnvelopeCodec
# =============================================================================

class EnvelopeCodec:
    """
    Encodes PlaintextRecords and decodes decrypted bytes.

    decode_payload never raises on bytes input; the final strategy
    always produces a binary preview.
    """

    def __init__(
        self,
        preview_bytes: int = BINARY_PREVIEW_BYTES,
        strategies: Sequence[DecodeStrategy] = DEFAULT_STRATEGIES,
    ):
        if preview_bytes <= 0:
            raise ValueError("preview_bytes must be positive")
        if not strategies:
            raise ValueError("At least one decode strategy is required")
        self._preview_bytes = preview_bytes
        self._strategies = tuple(strategies)

    @property
    def preview_bytes(self) -> int:
        return self._preview_bytes

    def encode(self, record: PlaintextRecord) -> bytes:
        """Serialize a record for encryption."""
        return record.to_bytes()

    def attempts(self, data: ByteLike) -> Iterator[Tuple[DecodeStrategy, Optional[DecodedMessage]]]:
        """Lazily run strategies in order, yielding (strategy, result)."""
        raw = as_bytes(data, "data")
        for strategy in self._strategies:
            yield strategy, strategy(raw, self._preview_bytes)

    def decode_payload(self, data: ByteLike) -> DecodedMessage:
        """
        Decode decrypted bytes into a DecodedMessage.

        Raises:
            TypeError: If data is None or not bytes-like
        """
        if data is None:
            raise TypeError("decode_payload() requires bytes, got None")
        for strategy, result in self.attempts(data):
            if result is None:
                continue
            if result.kind is PayloadKind.RECORD:
                logger.debug(f"Decoded v{result.record.version} record ({len(result.raw)}B)")
            else:
                logger.warning(
                    f"Decoded payload via {strategy.__name__} ({len(result.raw)}B, {result.kind.value})"
                )
            return result
        # Custom strategy lists may all miss
        raw = as_bytes(data, "data")
        return decode_binary(raw, self._preview_bytes)
