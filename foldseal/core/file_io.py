from __future__ import annotations

import logging
import mimetypes
import os
import stat
import tempfile
from typing import Optional, Union

from .container import build_container, make_metadata, parse_container, parse_header
from .content import BinaryContent, Content, TextContent, as_content
from .encoding import decode_text, detect_encoding
from .errors import (
    CorruptedMetadataError,
    FileSystemError,
    FoldSealError,
    HeaderIncomplete,
    SizeExceededError,
    ValidationError,
)
from .format_config import BINARY_ENCODING, DEFAULT_MIME_TYPE
from .limits import DEFAULT_LIMITS, TransformLimits
from .results import ContainerMetadata, FileReadResult, TransformResult

logger = logging.getLogger(__name__)

WritableContent = Union[bytes, bytearray, str, BinaryContent, TextContent]


def guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(path, strict=False)
    return mime_type or DEFAULT_MIME_TYPE


def _stat_regular_file(path: str) -> os.stat_result:
    if not path:
        raise ValidationError("File path is required")
    try:
        st = os.stat(path)
    except FileNotFoundError:
        raise FileSystemError(f"File does not exist: {path}", path=path)
    except OSError as exc:
        raise FileSystemError.from_os_error("access", path, exc)
    if stat.S_ISDIR(st.st_mode):
        raise ValidationError(f"Path is a directory, expected a file: {path}", path=path)
    return st


def read_header_bytes(path: str, size: int, limits: TransformLimits = DEFAULT_LIMITS) -> tuple[bytes, Optional[ContainerMetadata]]:
    """
    Read the leading bytes of a file and parse the container header if present.

    The read grows from limits.header_read_size up to limits.max_header_bytes
    while the metadata block keeps running past the bytes read.
    """
    to_read = max(1, limits.header_read_size)
    try:
        with open(path, "rb") as f:
            while True:
                f.seek(0)
                prefix = f.read(to_read)
                at_eof = to_read >= size
                try:
                    return prefix, parse_header(prefix, at_eof=at_eof)
                except HeaderIncomplete as exc:
                    if to_read >= limits.max_header_bytes:
                        raise CorruptedMetadataError(
                            f"Encryption metadata exceeds {limits.max_header_bytes} bytes",
                            path=path,
                        ) from exc
                    logger.debug(f"Header of {path} incomplete after {exc.bytes_examined} bytes, retrying")
                    to_read = min(to_read * 2, limits.max_header_bytes)
    except OSError as exc:
        raise FileSystemError.from_os_error("read", path, exc)


def load_file(path: str, header_only: bool = False, max_size: Optional[int] = None,
              limits: TransformLimits = DEFAULT_LIMITS) -> FileReadResult:
    """Raising variant of read_file used by the transforms."""
    st = _stat_regular_file(path)
    size = st.st_size
    limit = limits.max_file_size if max_size is None else max_size

    if header_only:
        prefix, metadata = read_header_bytes(path, size, limits)
        if metadata is not None:
            return FileReadResult(
                success=True,
                path=path,
                size=size,
                mime_type=guess_mime_type(metadata.filename or path),
                is_encrypted=True,
                encoding=metadata.encoding,
                metadata=metadata,
            )
        return FileReadResult(
            success=True,
            path=path,
            size=size,
            mime_type=guess_mime_type(path),
            is_encrypted=False,
            encoding=detect_encoding(prefix, limits.confidence_threshold),
        )

    if size > limit:
        raise SizeExceededError(size, limit, path=path)

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as exc:
        raise FileSystemError.from_os_error("read", path, exc)

    parsed = parse_container(data)
    if parsed is not None:
        return FileReadResult(
            success=True,
            path=path,
            size=len(data),
            mime_type=guess_mime_type(parsed.metadata.filename or path),
            is_encrypted=True,
            encoding=parsed.metadata.encoding,
            metadata=parsed.metadata,
            payload=parsed.payload,
        )

    encoding = detect_encoding(data, limits.confidence_threshold)
    content: Content = decode_text(data, encoding) or BinaryContent(data)
    return FileReadResult(
        success=True,
        path=path,
        size=len(data),
        mime_type=guess_mime_type(path),
        is_encrypted=False,
        encoding=content.encoding,
        content=content,
    )


def read_file(path: str, header_only: bool = False, max_size: Optional[int] = None,
              limits: TransformLimits = DEFAULT_LIMITS) -> FileReadResult:
    try:
        return load_file(path, header_only=header_only, max_size=max_size, limits=limits)
    except FoldSealError as e:
        if e.path is None:
            e.path = path
        logger.debug(f"Read failed for {path}: {e}")
        return FileReadResult.failed(e, path=path)


def _overwrite_in_place(path: str, data: bytes) -> None:
    with open(path, "r+b") as f:
        f.write(data)
        f.truncate()
        f.flush()
        os.fsync(f.fileno())


def write_bytes_atomic(path: str, data: bytes) -> int:
    """
    Replace the contents of path. Symlinks are written through to their
    target. A hard-linked file is overwritten in place so every link sees the
    new bytes; anything else goes to a temp file that is renamed over it.
    """
    target = os.path.realpath(path)
    directory = os.path.dirname(target) or "."
    try:
        os.makedirs(directory, exist_ok=True)
        previous = os.stat(target) if os.path.exists(target) else None
        if previous is not None and previous.st_nlink > 1:
            _overwrite_in_place(target, data)
            return len(data)

        fd, temp_path = tempfile.mkstemp(prefix=".foldseal_", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            if previous is not None:
                os.chmod(temp_path, stat.S_IMODE(previous.st_mode))
            os.replace(temp_path, target)
        except BaseException:
            try:
                os.remove(temp_path)
            except OSError:
                pass
            raise
    except OSError as exc:
        raise FileSystemError.from_os_error("write", path, exc)
    return len(data)


def store_file(path: str, content: WritableContent, is_encrypted: bool = False,
               encoding: Optional[str] = None, is_binary: Optional[bool] = None,
               filename: Optional[str] = None, plain_bytes: Optional[bytes] = None) -> TransformResult:
    """Raising variant of write_file."""
    if not path:
        raise ValidationError("File path is required")
    if content is None:
        raise ValidationError("Content is required")

    target = os.path.abspath(path)

    if is_encrypted:
        if not isinstance(content, (bytes, bytearray)):
            raise ValidationError("Encrypted payload must be bytes")
        if plain_bytes is None:
            raise ValidationError("Plaintext bytes are required to sign the container")
        metadata = make_metadata(
            filename=filename or os.path.basename(target),
            encoding=encoding or BINARY_ENCODING,
            plain_bytes=plain_bytes,
        )
        data = build_container(bytes(content), metadata)
    else:
        try:
            tagged = as_content(content, encoding)
        except TypeError as exc:
            raise ValidationError(str(exc)) from exc
        if is_binary is True and not tagged.is_binary:
            raise ValidationError("Binary write requested for text content")
        try:
            data = tagged.to_bytes()
        except (UnicodeError, LookupError) as exc:
            raise ValidationError(f"Cannot encode text as {tagged.encoding}: {exc}") from exc

    size = write_bytes_atomic(target, data)
    logger.debug(f"Wrote {size} bytes to {target} (encrypted={is_encrypted})")
    return TransformResult.ok(target, size)


def write_file(path: str, content: WritableContent, is_encrypted: bool = False,
               encoding: Optional[str] = None, is_binary: Optional[bool] = None,
               filename: Optional[str] = None, plain_bytes: Optional[bytes] = None) -> TransformResult:
    try:
        return store_file(
            path,
            content,
            is_encrypted=is_encrypted,
            encoding=encoding,
            is_binary=is_binary,
            filename=filename,
            plain_bytes=plain_bytes,
        )
    except FoldSealError as e:
        logger.warning(f"Write failed for {path}: {e}")
        return TransformResult.failed(e, path=path)
