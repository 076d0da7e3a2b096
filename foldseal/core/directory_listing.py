from __future__ import annotations

import logging
import os
from datetime import datetime

from .errors import FileSystemError
from .file_io import read_file
from .limits import DEFAULT_LIMITS, TransformLimits
from .results import DirectoryEntry

logger = logging.getLogger(__name__)


def check_directory_exists(path: str) -> bool:
    return bool(path) and os.path.isdir(path)


def _sort_key(entry: DirectoryEntry):
    return (not entry.is_directory, entry.name.casefold())


def get_directory_contents(path: str, limits: TransformLimits = DEFAULT_LIMITS) -> list[DirectoryEntry]:
    """
    List a directory, augmenting each file with header-only encryption info.

    Directories come first, then files, both case-insensitively by name. A
    file whose header cannot be read is still listed with minimal info.
    """
    try:
        with os.scandir(path) as it:
            raw_entries = list(it)
    except OSError as exc:
        raise FileSystemError.from_os_error("read directory", path, exc)

    results: list[DirectoryEntry] = []
    for entry in raw_entries:
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError as exc:
            logger.debug(f"Skipping {entry.path}: {exc}")
            continue
        modified = datetime.fromtimestamp(st.st_mtime)

        if entry.is_dir(follow_symlinks=False):
            results.append(
                DirectoryEntry(
                    name=entry.name,
                    path=entry.path,
                    is_directory=True,
                    size=st.st_size,
                    modified=modified,
                )
            )
            continue

        header = read_file(entry.path, header_only=True, limits=limits)
        if not header.success:
            logger.debug(f"Header read failed for {entry.path}: {header.error}")
            results.append(
                DirectoryEntry(
                    name=entry.name,
                    path=entry.path,
                    is_directory=False,
                    size=st.st_size,
                    modified=modified,
                )
            )
            continue

        results.append(
            DirectoryEntry(
                name=entry.name,
                path=entry.path,
                is_directory=False,
                size=st.st_size,
                modified=modified,
                is_encrypted=header.is_encrypted,
                metadata=header.metadata,
                mime_type=header.mime_type,
                encoding=header.encoding,
            )
        )

    results.sort(key=_sort_key)
    return results
