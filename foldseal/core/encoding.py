from __future__ import annotations

import codecs
import logging
from typing import Optional

import chardet

from .content import TextContent
from .format_config import BINARY_ENCODING, CHARDET_CONFIDENCE_THRESHOLD, DETECT_SAMPLE_SIZE

logger = logging.getLogger(__name__)

# chardet names (lowercased, underscores as hyphens) -> canonical codec names.
SUPPORTED_ENCODINGS = {
    "ascii": "utf-8",
    "utf-8": "utf-8",
    "utf8": "utf-8",
    "utf-8-sig": "utf-8-sig",
    "utf-16": "utf-16",
    "utf-16le": "utf-16-le",
    "utf-16-le": "utf-16-le",
    "utf-16be": "utf-16-be",
    "utf-16-be": "utf-16-be",
    "utf-32": "utf-32",
    "iso-8859-1": "iso-8859-1",
    "latin-1": "iso-8859-1",
    "iso-8859-2": "iso-8859-2",
    "iso-8859-5": "iso-8859-5",
    "iso-8859-7": "iso-8859-7",
    "iso-8859-8": "iso-8859-8",
    "iso-8859-9": "iso-8859-9",
    "windows-1250": "windows-1250",
    "windows-1251": "windows-1251",
    "windows-1252": "windows-1252",
    "windows-1253": "windows-1253",
    "windows-1254": "windows-1254",
    "windows-1255": "windows-1255",
    "koi8-r": "koi8-r",
    "maccyrillic": "mac-cyrillic",
    "macroman": "mac-roman",
    "ibm866": "cp866",
    "ibm855": "cp855",
    "shift-jis": "shift_jis",
    "cp932": "cp932",
    "euc-jp": "euc_jp",
    "iso-2022-jp": "iso2022_jp",
    "gb2312": "gb2312",
    "gb18030": "gb18030",
    "big5": "big5",
    "euc-tw": "big5",
    "euc-kr": "euc_kr",
    "cp949": "cp949",
    "iso-2022-kr": "iso2022_kr",
    "tis-620": "tis-620",
    "johab": "johab",
}

CANONICAL_ENCODINGS = frozenset(SUPPORTED_ENCODINGS.values())

# Control bytes that do occur in ordinary text.
_TEXT_CONTROL_BYTES = {7, 8, 9, 10, 11, 12, 13, 27}
_BINARY_RATIO = 0.3
_UNICODE_BOMS = (codecs.BOM_UTF32_LE, codecs.BOM_UTF32_BE, codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)


def normalize_encoding(name: Optional[str]) -> str:
    if not name:
        return BINARY_ENCODING
    key = name.strip().lower().replace("_", "-")
    if key in SUPPORTED_ENCODINGS:
        return SUPPORTED_ENCODINGS[key]
    # Already-canonical names round-trip unchanged.
    if name in CANONICAL_ENCODINGS:
        return name
    return BINARY_ENCODING


def looks_binary(sample: bytes) -> bool:
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    suspicious = sum(1 for b in sample if b < 32 and b not in _TEXT_CONTROL_BYTES)
    return suspicious / len(sample) > _BINARY_RATIO


def detect_encoding(data: bytes, confidence_threshold: float = CHARDET_CONFIDENCE_THRESHOLD) -> str:
    """
    Classify a buffer as "binary" or a canonical text encoding.

    Only the first DETECT_SAMPLE_SIZE bytes are inspected. Never raises.
    """
    if not data:
        return "utf-8"

    sample = bytes(data[:DETECT_SAMPLE_SIZE])
    # chardet reports NUL-laden ASCII as "ascii"; only BOM-marked UTF-16/32 may contain NULs.
    if b"\x00" in sample and not sample.startswith(_UNICODE_BOMS):
        return BINARY_ENCODING
    try:
        guess = chardet.detect(sample)
    except (ValueError, TypeError, LookupError) as e:
        logger.debug(f"Encoding detection failed, treating as binary: {e}")
        return BINARY_ENCODING

    name = guess.get("encoding")
    confidence = guess.get("confidence") or 0.0
    if confidence < confidence_threshold and looks_binary(sample):
        return BINARY_ENCODING
    return normalize_encoding(name)


def decode_text(data: bytes, encoding: str) -> Optional[TextContent]:
    """
    Decode data as text, or return None when the bytes would not survive a
    decode/encode round trip in that encoding.
    """
    if encoding == BINARY_ENCODING:
        return None
    try:
        text = data.decode(encoding)
        if text.encode(encoding) != data:
            return None
    except (UnicodeError, LookupError):
        return None
    return TextContent(text, encoding)
