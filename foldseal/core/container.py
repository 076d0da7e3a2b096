"""
Build and parse the on-disk container: MARKER + JSON metadata + payload.

The metadata object ends at the brace that closes the top-level object; braces
inside JSON string literals are ignored. Metadata is written ASCII-only so the
byte offsets found by the scanner are exact.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .encoding import normalize_encoding
from .errors import CorruptedMetadataError, HeaderIncomplete, ValidationError
from .format_config import BINARY_ENCODING, HEADER_VERSION, MARKER, MARKER_SIZE
from .results import ContainerMetadata

logger = logging.getLogger(__name__)

_OPEN_BRACE = ord("{")
_CLOSE_BRACE = ord("}")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_SIGNATURE_PATTERN = re.compile(r"[0-9a-f]{64}")


@dataclass(frozen=True)
class ParsedContainer:
    metadata: ContainerMetadata
    payload: bytes
    header_size: int


def compute_signature(plain_bytes: bytes) -> str:
    return hashlib.sha256(plain_bytes).hexdigest()


def make_metadata(filename: str, encoding: str, plain_bytes: bytes) -> ContainerMetadata:
    return ContainerMetadata(
        filename=filename,
        encoding=encoding,
        version=HEADER_VERSION,
        signature=compute_signature(plain_bytes),
    )


def is_container(data: bytes) -> bool:
    return bytes(data[:MARKER_SIZE]) == MARKER


def find_metadata_end(data: bytes, start: int = MARKER_SIZE) -> int:
    """
    Return the index just past the brace closing the object starting at
    `start`, or -1 when the object does not close inside `data`.
    """
    if start >= len(data):
        return -1
    if data[start] != _OPEN_BRACE:
        raise CorruptedMetadataError("Encryption metadata is malformed - expected '{' after the header marker")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(data)):
        byte = data[index]
        if in_string:
            if escaped:
                escaped = False
            elif byte == _BACKSLASH:
                escaped = True
            elif byte == _QUOTE:
                in_string = False
            continue
        if byte == _QUOTE:
            in_string = True
        elif byte == _OPEN_BRACE:
            depth += 1
        elif byte == _CLOSE_BRACE:
            depth -= 1
            if depth == 0:
                return index + 1
    return -1


def _metadata_from_json(raw: bytes) -> ContainerMetadata:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorruptedMetadataError("Unable to parse encrypted file metadata") from exc
    if not isinstance(data, dict):
        raise CorruptedMetadataError("Encrypted file metadata must be a JSON object")

    filename = data.get("filename")
    encoding = data.get("encoding")
    version = data.get("version")
    signature = data.get("signature")

    if not isinstance(filename, str) or not isinstance(encoding, str) or not isinstance(signature, str):
        raise CorruptedMetadataError("Encrypted file metadata is missing required fields")
    if not _SIGNATURE_PATTERN.fullmatch(signature):
        raise CorruptedMetadataError("Encrypted file metadata has an invalid signature")
    if isinstance(version, bool) or not isinstance(version, int):
        raise CorruptedMetadataError("Encrypted file metadata has an invalid version")
    if version < 1 or version > HEADER_VERSION:
        raise CorruptedMetadataError(f"Unsupported file version: {version}")

    normalized = normalize_encoding(encoding)
    if normalized == BINARY_ENCODING and encoding != BINARY_ENCODING:
        raise CorruptedMetadataError(f"Unsupported content encoding in metadata: {encoding}")

    return ContainerMetadata(filename=filename, encoding=normalized, version=version, signature=signature)


def build_container(payload: bytes, metadata: ContainerMetadata) -> bytes:
    if not payload:
        raise ValidationError("Encrypted payload is empty")
    header = json.dumps(metadata.to_dict(), separators=(",", ":"), ensure_ascii=True)
    return MARKER + header.encode("ascii") + bytes(payload)


def parse_container(data: bytes) -> Optional[ParsedContainer]:
    """Return None for plaintext; raise CorruptedMetadataError for a broken header."""
    if not is_container(data):
        return None

    end = find_metadata_end(data)
    if end == -1:
        raise CorruptedMetadataError(
            "Encryption metadata is malformed - the file has been corrupted (closing brace not found)"
        )
    metadata = _metadata_from_json(bytes(data[MARKER_SIZE:end]))
    return ParsedContainer(metadata=metadata, payload=bytes(data[end:]), header_size=end)


def parse_header(prefix: bytes, at_eof: bool) -> Optional[ContainerMetadata]:
    """
    Header-only variant of parse_container working on a bounded prefix.

    Raises HeaderIncomplete when the metadata runs past the prefix and more of
    the file is available.
    """
    if not is_container(prefix):
        return None

    end = find_metadata_end(prefix)
    if end == -1:
        if at_eof:
            raise CorruptedMetadataError(
                "Encryption metadata is malformed - the file has been corrupted (closing brace not found)"
            )
        raise HeaderIncomplete(
            "Unable to parse encrypted file metadata from header - increase header read size if necessary",
            bytes_examined=len(prefix),
        )
    return _metadata_from_json(bytes(prefix[MARKER_SIZE:end]))
