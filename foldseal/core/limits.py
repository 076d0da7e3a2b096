from __future__ import annotations

from dataclasses import dataclass

from .format_config import (
    CHARDET_CONFIDENCE_THRESHOLD,
    HEADER_READ_SIZE,
    MAX_FILE_SIZE,
    MAX_HEADER_BYTES,
    MAX_PREVIEW_FILE_SIZE,
    MAX_TEXT_EDIT_SIZE,
)


@dataclass(frozen=True)
class TransformLimits:
    max_file_size: int = MAX_FILE_SIZE
    max_preview_file_size: int = MAX_PREVIEW_FILE_SIZE
    max_text_edit_size: int = MAX_TEXT_EDIT_SIZE
    header_read_size: int = HEADER_READ_SIZE
    max_header_bytes: int = MAX_HEADER_BYTES
    confidence_threshold: float = CHARDET_CONFIDENCE_THRESHOLD
    sort_entries: bool = False

    @classmethod
    def from_preferences(cls, preferences) -> "TransformLimits":
        return cls(
            max_file_size=int(getattr(preferences, "max_file_size", MAX_FILE_SIZE)),
            max_preview_file_size=int(getattr(preferences, "max_preview_file_size", MAX_PREVIEW_FILE_SIZE)),
            max_text_edit_size=int(getattr(preferences, "max_text_edit_size", MAX_TEXT_EDIT_SIZE)),
            header_read_size=int(getattr(preferences, "header_read_size", HEADER_READ_SIZE)),
            max_header_bytes=int(getattr(preferences, "max_header_bytes", MAX_HEADER_BYTES)),
            confidence_threshold=float(getattr(preferences, "confidence_threshold", CHARDET_CONFIDENCE_THRESHOLD)),
            sort_entries=bool(getattr(preferences, "sort_entries", False)),
        )


DEFAULT_LIMITS = TransformLimits()
