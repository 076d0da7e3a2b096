from __future__ import annotations

import hmac
import logging
import os

from .container import compute_signature
from .content import Content
from .encrypt import Password, content_from_transport, decrypt_bytes, encrypt_bytes
from .errors import (
    AlreadyEncryptedError,
    DecryptionFailedError,
    FoldSealError,
    NotEncryptedError,
    ValidationError,
)
from .file_io import load_file, store_file, write_bytes_atomic
from .limits import DEFAULT_LIMITS, TransformLimits
from .results import ContainerMetadata, TransformResult

logger = logging.getLogger(__name__)


def validate_request(path: str, password: Password) -> None:
    if not path:
        raise ValidationError("File path is required")
    if password is None or (isinstance(password, (str, bytes, bytearray)) and len(password) == 0):
        raise ValidationError("Password is required")


def seal_content(path: str, content: Content, password: Password, filename: str | None = None) -> TransformResult:
    """Encrypt content and write the container to path."""
    plain = content.transport_bytes()
    if not plain:
        raise ValidationError("Content is empty", path=path)
    payload = encrypt_bytes(plain, password)
    return store_file(
        path,
        payload,
        is_encrypted=True,
        encoding=content.encoding,
        filename=filename or os.path.basename(os.path.abspath(path)),
        plain_bytes=plain,
    )


def unseal_payload(payload: bytes, metadata: ContainerMetadata, password: Password) -> Content:
    """Decrypt a container payload and check it against the stored signature."""
    plain = decrypt_bytes(payload, password)
    if not hmac.compare_digest(compute_signature(plain), metadata.signature):
        raise DecryptionFailedError("Decryption failed - incorrect password or corrupted data (signature mismatch)")
    return content_from_transport(plain, metadata.encoding)


def _encrypt_file(path: str, password: Password, limits: TransformLimits) -> TransformResult:
    validate_request(path, password)
    read = load_file(path, limits=limits)
    name = os.path.basename(path)
    if read.is_encrypted:
        raise AlreadyEncryptedError(f"File is already encrypted: {name}", path=path)

    result = seal_content(path, read.content, password, filename=name)
    logger.info(f"Encrypted {path} ({read.encoding})")
    return TransformResult.ok(result.saved_path, result.size, message="File encrypted successfully")


def _decrypt_file(path: str, password: Password, limits: TransformLimits) -> TransformResult:
    validate_request(path, password)
    read = load_file(path, limits=limits)
    name = os.path.basename(path)
    if not read.is_encrypted:
        raise NotEncryptedError(f"File is not encrypted: {name}", path=path)

    content = unseal_payload(read.payload, read.metadata, password)
    try:
        data = content.to_bytes()
    except (UnicodeError, LookupError) as exc:
        raise DecryptionFailedError(f"Failed to restore {content.encoding} text - file may be corrupted") from exc

    target = os.path.abspath(path)
    size = write_bytes_atomic(target, data)
    logger.info(f"Decrypted {path}")
    return TransformResult.ok(target, size, message=f"File decrypted: {name}")


def encrypt_file(path: str, password: Password, limits: TransformLimits = DEFAULT_LIMITS) -> TransformResult:
    """
    Encrypt a file in place. Refuses files that already carry the container
    marker, leaving them untouched.
    """
    try:
        return _encrypt_file(path, password, limits)
    except FoldSealError as e:
        logger.warning(f"Encryption of {path} failed: {e}")
        return TransformResult.failed(e, path=path)


def decrypt_file(path: str, password: Password, limits: TransformLimits = DEFAULT_LIMITS) -> TransformResult:
    """Decrypt a container in place, restoring the original bytes."""
    try:
        return _decrypt_file(path, password, limits)
    except FoldSealError as e:
        logger.warning(f"Decryption of {path} failed: {e}")
        return TransformResult.failed(e, path=path)
