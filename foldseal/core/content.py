from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .format_config import BINARY_ENCODING


@dataclass(frozen=True)
class BinaryContent:
    data: bytes

    @property
    def is_binary(self) -> bool:
        return True

    @property
    def encoding(self) -> str:
        return BINARY_ENCODING

    def to_bytes(self) -> bytes:
        return self.data

    def transport_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class TextContent:
    text: str
    encoding: str = "utf-8"

    @property
    def is_binary(self) -> bool:
        return False

    def to_bytes(self) -> bytes:
        """Bytes in the original on-disk encoding."""
        return self.text.encode(self.encoding)

    def transport_bytes(self) -> bytes:
        """UTF-8 bytes fed to the cipher."""
        return self.text.encode("utf-8")


Content = Union[BinaryContent, TextContent]


def as_content(value, encoding: str | None = None) -> Content:
    """Tag caller-supplied bytes/str once at the boundary."""
    if isinstance(value, (BinaryContent, TextContent)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BinaryContent(bytes(value))
    if isinstance(value, str):
        if not encoding or encoding == BINARY_ENCODING:
            encoding = "utf-8"
        return TextContent(value, encoding)
    raise TypeError("content must be str, bytes, or Content")
