from __future__ import annotations

import logging
import os
from typing import Optional

from .content import BinaryContent, TextContent, as_content
from .encrypt import Password
from .errors import FoldSealError, NotEncryptedError, SizeExceededError, ValidationError
from .file_io import guess_mime_type, load_file
from .file_transform import seal_content, unseal_payload, validate_request
from .format_config import ENCRYPTED_SUFFIX
from .limits import DEFAULT_LIMITS, TransformLimits
from .results import PreviewResult, TransformResult

logger = logging.getLogger(__name__)


def original_name_for(path: str, stored_name: Optional[str]) -> str:
    if stored_name:
        return stored_name
    name = os.path.basename(path)
    if name.lower().endswith(ENCRYPTED_SUFFIX):
        return name[:-len(ENCRYPTED_SUFFIX)]
    return name


def _decrypt_to_memory(path: str, password: Password, max_size: int, limits: TransformLimits) -> PreviewResult:
    validate_request(path, password)
    read = load_file(path, max_size=max_size, limits=limits)
    if not read.is_encrypted:
        raise NotEncryptedError(f"File is not encrypted: {os.path.basename(path)}", path=path)

    content = unseal_payload(read.payload, read.metadata, password)
    original_name = original_name_for(path, read.metadata.filename)
    return PreviewResult(
        success=True,
        content=content,
        mime_type=guess_mime_type(original_name),
        original_name=original_name,
        size=len(content.transport_bytes()),
    )


def decrypt_in_memory(path: str, password: Password, limits: TransformLimits = DEFAULT_LIMITS) -> PreviewResult:
    """
    Decrypt a container for preview. The plaintext is returned to the caller
    and never written to disk.
    """
    try:
        return _decrypt_to_memory(path, password, limits.max_preview_file_size, limits)
    except FoldSealError as e:
        logger.warning(f"Preview decryption of {path} failed: {e}")
        return PreviewResult.failed(e)


def decrypt_text_for_edit(path: str, password: Password, limits: TransformLimits = DEFAULT_LIMITS) -> PreviewResult:
    try:
        result = _decrypt_to_memory(path, password, limits.max_text_edit_size, limits)
        if result.is_binary:
            raise ValidationError(f"File does not contain editable text: {os.path.basename(path)}", path=path)
        return result
    except FoldSealError as e:
        logger.warning(f"Edit decryption of {path} failed: {e}")
        return PreviewResult.failed(e)


def _encrypt_from_memory(path: str, content, password: Password, filename: Optional[str],
                         is_binary: Optional[bool], limits: TransformLimits) -> TransformResult:
    validate_request(path, password)
    if content is None:
        raise ValidationError("Content is required", path=path)
    try:
        tagged = as_content(content)
    except TypeError as exc:
        raise ValidationError(str(exc), path=path) from exc

    if is_binary is True and not tagged.is_binary:
        raise ValidationError("Binary content must be provided as bytes", path=path)
    if is_binary is False and tagged.is_binary:
        raise ValidationError("Text content must be provided as a string", path=path)

    plain = tagged.transport_bytes()
    if len(plain) > limits.max_preview_file_size:
        raise SizeExceededError(len(plain), limits.max_preview_file_size, path=path, label="Content")
    if isinstance(tagged, TextContent):
        try:
            tagged.to_bytes()
        except (UnicodeError, LookupError) as exc:
            raise ValidationError(f"Text cannot be stored as {tagged.encoding}: {exc}", path=path) from exc

    result = seal_content(path, tagged, password, filename=filename)
    logger.info(f"Encrypted in-memory content to {result.saved_path}")
    return result


def encrypt_in_memory(path: str, content, password: Password, filename: Optional[str] = None,
                      is_binary: Optional[bool] = None,
                      limits: TransformLimits = DEFAULT_LIMITS) -> TransformResult:
    """
    Encrypt caller-supplied content straight into a container at path,
    without a plaintext intermediate on disk.
    """
    try:
        return _encrypt_from_memory(path, content, password, filename, is_binary, limits)
    except FoldSealError as e:
        logger.warning(f"In-memory encryption to {path} failed: {e}")
        return TransformResult.failed(e, path=path)


def encrypt_and_save_text(path: str, text, password: Password, encoding: str = "utf-8",
                          limits: TransformLimits = DEFAULT_LIMITS) -> TransformResult:
    if isinstance(text, str):
        text = TextContent(text, encoding)
    return encrypt_in_memory(path, text, password, is_binary=False, limits=limits)


def encrypt_and_save_image(path: str, data, password: Password,
                           limits: TransformLimits = DEFAULT_LIMITS) -> TransformResult:
    if isinstance(data, (bytes, bytearray)):
        data = BinaryContent(bytes(data))
    return encrypt_in_memory(path, data, password, is_binary=True, limits=limits)
