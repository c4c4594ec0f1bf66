"""
Device Reporter - Envelope Codec

Wire format: LZ4 block of the canonical JSON envelope, prefixed with the
uncompressed length as a 4-byte little-endian integer.
"""

import json
import struct

import lz4.block
import structlog
from pydantic import ValidationError

from .errors import EncodingError
from .telemetry.models import ReportEnvelope

logger = structlog.get_logger(__name__)

SIZE_PREFIX = struct.Struct("<I")
MAX_PAYLOAD_SIZE = 16 * 1024 * 1024


def serialize(envelope: ReportEnvelope) -> bytes:
    """Canonical JSON: wire names, declaration order, compact separators."""
    try:
        document = json.dumps(
            envelope.model_dump(by_alias=True),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Envelope is not representable as JSON: {e}") from e
    return document.encode("utf-8")


def encode(envelope: ReportEnvelope) -> bytes:
    """Serialize and compress an envelope."""
    document = serialize(envelope)
    if len(document) > MAX_PAYLOAD_SIZE:
        raise EncodingError(f"Envelope too large: {len(document)} bytes")

    try:
        payload = lz4.block.compress(document, store_size=True)
    except (lz4.block.LZ4BlockError, ValueError) as e:
        raise EncodingError(f"Compression failed: {e}") from e

    logger.debug(
        "Envelope encoded",
        message_id=envelope.message_id,
        compressed=len(payload),
        uncompressed=len(document),
    )
    return payload


def decode(payload: bytes) -> ReportEnvelope:
    """Inverse of encode. Truncated or tampered input raises EncodingError."""
    if len(payload) <= SIZE_PREFIX.size:
        raise EncodingError(f"Payload too short: {len(payload)} bytes")

    (size,) = SIZE_PREFIX.unpack_from(payload)
    if size > MAX_PAYLOAD_SIZE:
        raise EncodingError(f"Declared size {size} exceeds limit")

    try:
        document = lz4.block.decompress(payload)
    except (lz4.block.LZ4BlockError, ValueError) as e:
        raise EncodingError(f"Decompression failed: {e}") from e
    if len(document) != size:
        raise EncodingError(f"Decompressed {len(document)} bytes, expected {size}")

    try:
        return ReportEnvelope.model_validate_json(document)
    except (ValidationError, ValueError) as e:
        raise EncodingError(f"Malformed envelope: {e}") from e
