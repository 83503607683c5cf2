"""Wire codec for synchronized collections.

This module provides:
- Plain / Compressed: tagged wire payloads
- encode / decode: total text <-> wire functions (decode(encode(x)) == x)
- dump_records / parse_records: JSON serialization of record lists

Wire format:
    A collection travels as a JSON array of records. Payloads larger than
    COMPRESSION_THRESHOLD bytes are gzip-compressed, base64-encoded and
    prefixed with COMPRESSED_PREFIX so plain and compressed values can be
    told apart without external metadata.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from addrsync.core.types import CodecError, Record

try:
    import zlib
except ImportError:  # pragma: no cover - interpreter built without zlib
    zlib = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

COMPRESSION_THRESHOLD = 4096  # bytes
COMPRESSED_PREFIX = "__COMPRESSED__"
EMPTY_COLLECTION = "[]"

# zlib window bits selecting the gzip container
_GZIP_WBITS = 16 + 15


@dataclass(frozen=True)
class Plain:
    """Uncompressed wire payload."""

    text: str


@dataclass(frozen=True)
class Compressed:
    """Gzip-compressed wire payload."""

    data: bytes


WirePayload = Plain | Compressed


def byte_size(text: str) -> int:
    """Size of text once UTF-8 encoded."""
    return len(text.encode("utf-8"))


def compression_available() -> bool:
    """Check if the gzip primitive can be used."""
    return zlib is not None


def compress(text: str) -> Compressed:
    """Gzip-compress text.

    Raises:
        CodecError: If compression is unavailable.
    """
    if zlib is None:
        raise CodecError("Compression is not available")
    compressor = zlib.compressobj(wbits=_GZIP_WBITS)
    data = compressor.compress(text.encode("utf-8")) + compressor.flush()
    return Compressed(data)


def decompress(payload: Compressed) -> str:
    """Decompress a gzip payload back to text.

    Raises:
        CodecError: If the payload is corrupt or decompression is unavailable.
    """
    if zlib is None:
        raise CodecError("Decompression is not available")
    try:
        return zlib.decompress(payload.data, wbits=_GZIP_WBITS).decode("utf-8")
    except (zlib.error, UnicodeDecodeError) as e:
        raise CodecError(f"Corrupt compressed payload: {e}") from e


def to_wire(payload: WirePayload) -> str:
    """Render a tagged payload as its on-wire string."""
    if isinstance(payload, Compressed):
        return COMPRESSED_PREFIX + base64.b64encode(payload.data).decode("ascii")
    return payload.text


def from_wire(wire: str) -> WirePayload:
    """Parse an on-wire string into a tagged payload.

    Raises:
        CodecError: If a compressed payload is not valid base64.
    """
    if not wire.startswith(COMPRESSED_PREFIX):
        return Plain(wire)
    try:
        data = base64.b64decode(wire[len(COMPRESSED_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Invalid base64 payload: {e}") from e
    return Compressed(data)


def encode(text: str, threshold: int = COMPRESSION_THRESHOLD) -> str:
    """Encode text for the wire, compressing only above the threshold.

    Never fails: if compression is unavailable or errors, the text is
    returned unchanged.
    """
    original_size = byte_size(text)
    if original_size <= threshold:
        return text

    if not compression_available():
        logger.warning("Compression not available, storing uncompressed")
        return text

    try:
        wire = to_wire(compress(text))
    except CodecError as e:
        logger.error(f"Compression error: {e}")
        return text

    compressed_size = byte_size(wire)
    logger.info(
        f"Compressed: {original_size}B -> {compressed_size}B "
        f"({round((1 - compressed_size / original_size) * 100)}% reduction)"
    )
    return wire


def decode(wire: Any) -> str:
    """Decode a stored value back to text.

    Handles absent values (empty collection), non-string values
    (re-serialized as JSON), plain text and compressed text. A corrupt
    compressed payload is returned raw instead of raising.
    """
    if wire is None:
        return EMPTY_COLLECTION

    if not isinstance(wire, str):
        return json.dumps(wire, separators=(",", ":"), ensure_ascii=False)

    try:
        payload = from_wire(wire)
        if isinstance(payload, Plain):
            return payload.text
        return decompress(payload)
    except CodecError as e:
        logger.error(f"Decompression error: {e}")
        return wire


def dump_records(records: Iterable[Record]) -> str:
    """Serialize records as a compact JSON array."""
    return json.dumps(
        [r.to_dict() for r in records],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def parse_records(text: str) -> list[Record]:
    """Parse a JSON array of records.

    Raises:
        CodecError: If the text is not a JSON array of record objects.
    """
    try:
        raw = json.loads(text)
    except ValueError as e:
        raise CodecError(f"Invalid collection JSON: {e}") from e
    return records_from_value(raw)


def records_from_value(raw: Any) -> list[Record]:
    """Build records from an already-parsed JSON value.

    Raises:
        CodecError: If the value is not a list of record objects.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise CodecError("Collection must be a JSON array")
    try:
        return [Record.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CodecError(f"Invalid record: {e}") from e
