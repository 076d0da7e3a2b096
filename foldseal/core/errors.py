from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "validation"
    ALREADY_ENCRYPTED = "already_encrypted"
    NOT_ENCRYPTED = "not_encrypted"
    CORRUPTED_METADATA = "corrupted_metadata"
    DECRYPTION_FAILED = "decryption_failed"
    SIZE_EXCEEDED = "size_exceeded"
    FILE_SYSTEM = "file_system"


class FoldSealError(Exception):
    """Base class for every failure the core reports."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


class ValidationError(FoldSealError):
    """Input validation failure."""

    kind = ErrorKind.VALIDATION


class AlreadyEncryptedError(FoldSealError):
    """The file already carries the container marker."""

    kind = ErrorKind.ALREADY_ENCRYPTED


class NotEncryptedError(FoldSealError):
    """The file does not carry the container marker."""

    kind = ErrorKind.NOT_ENCRYPTED


class CorruptedMetadataError(FoldSealError):
    """Marker present but the metadata block is unusable."""

    kind = ErrorKind.CORRUPTED_METADATA


class HeaderIncomplete(CorruptedMetadataError):
    """Metadata did not close inside the bytes read; retry with a larger read."""

    def __init__(self, message: str, bytes_examined: int, path: str | None = None):
        super().__init__(message, path=path)
        self.bytes_examined = bytes_examined


class DecryptionFailedError(FoldSealError):
    """Wrong password or corrupted ciphertext."""

    kind = ErrorKind.DECRYPTION_FAILED


class SizeExceededError(FoldSealError):
    kind = ErrorKind.SIZE_EXCEEDED

    def __init__(self, size: int, limit: int, path: str | None = None, label: str = "File"):
        super().__init__(
            f"{label} too large ({size} bytes). Maximum allowed: {limit} bytes",
            path=path,
        )
        self.size = size
        self.limit = limit


class FileSystemError(FoldSealError):
    kind = ErrorKind.FILE_SYSTEM

    @classmethod
    def from_os_error(cls, action: str, path: str, exc: OSError) -> "FileSystemError":
        detail = exc.strerror or str(exc)
        return cls(f"Unable to {action} {path}: {detail}", path=path)


_KIND_TITLES = {
    ErrorKind.VALIDATION: "Validation Error",
    ErrorKind.ALREADY_ENCRYPTED: "Already Encrypted",
    ErrorKind.NOT_ENCRYPTED: "Not Encrypted",
    ErrorKind.CORRUPTED_METADATA: "Corrupted File",
    ErrorKind.DECRYPTION_FAILED: "Decryption Failed",
    ErrorKind.SIZE_EXCEEDED: "File Too Large",
    ErrorKind.FILE_SYSTEM: "File System Error",
}


def format_error(error: FoldSealError) -> str:
    return f"{_KIND_TITLES[error.kind]}: {error.message}"
