from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .content import Content
from .errors import ErrorKind, FoldSealError, format_error
from .format_config import BINARY_ENCODING


@dataclass(frozen=True)
class ContainerMetadata:
    filename: str
    encoding: str
    version: int
    signature: str

    def to_dict(self) -> dict[str, Any]:
        # Key order is part of the on-disk format.
        return {
            "filename": self.filename,
            "encoding": self.encoding,
            "version": self.version,
            "signature": self.signature,
        }


def _error_fields(error: Optional[FoldSealError]) -> dict[str, Any]:
    if error is None:
        return {}
    return {"error": error.message, "errorKind": error.kind.value}


@dataclass(frozen=True)
class TransformResult:
    success: bool
    path: Optional[str] = None
    saved_path: Optional[str] = None
    size: Optional[int] = None
    message: Optional[str] = None
    error: Optional[FoldSealError] = None

    @classmethod
    def ok(cls, saved_path: str, size: int, message: str | None = None) -> "TransformResult":
        return cls(success=True, path=saved_path, saved_path=saved_path, size=size, message=message)

    @classmethod
    def failed(cls, error: FoldSealError, path: str | None = None) -> "TransformResult":
        return cls(success=False, path=path or error.path, error=error)

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    @property
    def error_message(self) -> Optional[str]:
        return format_error(self.error) if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data["savedPath"] = self.saved_path
            data["size"] = self.size
            if self.message:
                data["message"] = self.message
        data.update(_error_fields(self.error))
        return data


@dataclass(frozen=True)
class FileReadResult:
    success: bool
    path: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
    is_encrypted: bool = False
    encoding: Optional[str] = None
    metadata: Optional[ContainerMetadata] = None
    content: Optional[Content] = None
    payload: Optional[bytes] = None
    error: Optional[FoldSealError] = None

    @classmethod
    def failed(cls, error: FoldSealError, path: str | None = None) -> "FileReadResult":
        return cls(success=False, path=path or error.path, error=error)

    @property
    def is_binary(self) -> bool:
        return self.encoding == BINARY_ENCODING

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success:
            data.update(
                {
                    "path": self.path,
                    "size": self.size,
                    "mimeType": self.mime_type,
                    "isEncrypted": self.is_encrypted,
                    "encoding": self.encoding,
                    "metadata": self.metadata.to_dict() if self.metadata else None,
                }
            )
        data.update(_error_fields(self.error))
        return data


@dataclass(frozen=True)
class BatchStatistics:
    encrypted_count: int = 0
    decrypted_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    errors: tuple[tuple[str, str], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "encryptedCount": self.encrypted_count,
            "decryptedCount": self.decrypted_count,
            "skippedCount": self.skipped_count,
            "failedCount": self.failed_count,
            "errors": [f"{path}: {message}" for path, message in self.errors],
        }


@dataclass
class BatchStatisticsBuilder:
    encrypted_count: int = 0
    decrypted_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)

    def record_failure(self, path: str, message: str) -> None:
        self.failed_count += 1
        self.errors.append((path, message))

    def freeze(self) -> BatchStatistics:
        return BatchStatistics(
            encrypted_count=self.encrypted_count,
            decrypted_count=self.decrypted_count,
            skipped_count=self.skipped_count,
            failed_count=self.failed_count,
            errors=tuple(self.errors),
        )


@dataclass(frozen=True)
class BatchResult:
    success: bool
    statistics: Optional[BatchStatistics] = None
    message: Optional[str] = None
    cancelled: bool = False
    error: Optional[FoldSealError] = None

    @classmethod
    def failed(cls, error: FoldSealError) -> "BatchResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.statistics is not None:
            data["statistics"] = self.statistics.to_dict()
        if self.message:
            data["message"] = self.message
        if self.cancelled:
            data["cancelled"] = True
        data.update(_error_fields(self.error))
        return data


@dataclass(frozen=True)
class PreviewResult:
    success: bool
    content: Optional[Content] = None
    mime_type: Optional[str] = None
    original_name: Optional[str] = None
    size: Optional[int] = None
    error: Optional[FoldSealError] = None

    @classmethod
    def failed(cls, error: FoldSealError) -> "PreviewResult":
        return cls(success=False, error=error)

    @property
    def is_binary(self) -> bool:
        return self.content is not None and self.content.is_binary

    @property
    def encoding(self) -> Optional[str]:
        return self.content.encoding if self.content is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.success and self.content is not None:
            data.update(
                {
                    "content": self.content.data if self.content.is_binary else self.content.text,
                    "mimeType": self.mime_type,
                    "isBinary": self.is_binary,
                    "encoding": self.encoding,
                    "originalName": self.original_name,
                    "size": self.size,
                }
            )
        data.update(_error_fields(self.error))
        return data


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    is_directory: bool
    size: int
    modified: datetime
    is_encrypted: bool = False
    metadata: Optional[ContainerMetadata] = None
    mime_type: Optional[str] = None
    encoding: Optional[str] = None
