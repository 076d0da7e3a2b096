from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .encrypt import Password
from .errors import ErrorKind, FileSystemError, FoldSealError, ValidationError
from .file_io import read_file
from .file_transform import decrypt_file, encrypt_file
from .limits import DEFAULT_LIMITS, TransformLimits
from .results import BatchResult, BatchStatisticsBuilder, TransformResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]

OUTCOME_ENCRYPTED = "encrypted"
OUTCOME_DECRYPTED = "decrypted"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"

_STATE_MISMATCH = (ErrorKind.ALREADY_ENCRYPTED, ErrorKind.NOT_ENCRYPTED)


class CancellationToken:
    """Checked between files; a file already in progress always completes."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class _BatchPlan:
    encrypting: bool
    transform: Callable[[str, Password, TransformLimits], TransformResult]
    done_outcome: str
    verb: str


_ENCRYPT_PLAN = _BatchPlan(True, encrypt_file, OUTCOME_ENCRYPTED, "encrypted")
_DECRYPT_PLAN = _BatchPlan(False, decrypt_file, OUTCOME_DECRYPTED, "decrypted")


def validate_directory(path: str, password: Password) -> None:
    if not path or password is None or (isinstance(password, (str, bytes, bytearray)) and len(password) == 0):
        raise ValidationError("Directory path and password are required")
    if not os.path.exists(path):
        raise FileSystemError(f"Directory does not exist: {path}", path=path)
    if not os.path.isdir(path):
        raise ValidationError(f"Path is not a directory: {path}", path=path)


class _BatchRun:
    def __init__(self, plan: _BatchPlan, password: Password, limits: TransformLimits,
                 cancel: Optional[CancellationToken], progress: Optional[ProgressCallback]):
        self.plan = plan
        self.password = password
        self.limits = limits
        self.cancel = cancel
        self.progress = progress
        self.stats = BatchStatisticsBuilder()
        self.cancelled = False

    def _report(self, path: str, outcome: str) -> None:
        if self.progress is not None:
            self.progress(path, outcome)

    def _fail(self, path: str, message: str) -> None:
        logger.warning(f"Batch: {path} failed: {message}")
        self.stats.record_failure(path, message)
        self._report(path, OUTCOME_FAILED)

    def _skip(self, path: str) -> None:
        self.stats.skipped_count += 1
        self._report(path, OUTCOME_SKIPPED)

    def _done(self, path: str) -> None:
        if self.plan.encrypting:
            self.stats.encrypted_count += 1
        else:
            self.stats.decrypted_count += 1
        self._report(path, self.plan.done_outcome)

    def process_file(self, path: str) -> None:
        header = read_file(path, header_only=True, limits=self.limits)
        if not header.success:
            self._fail(path, header.error.message)
            return
        if header.is_encrypted == self.plan.encrypting:
            logger.debug(f"Batch: skipping {path}, already {self.plan.verb}")
            self._skip(path)
            return

        result = self.plan.transform(path, self.password, self.limits)
        if result.success:
            self._done(path)
        elif result.error_kind in _STATE_MISMATCH:
            self._skip(path)
        else:
            self._fail(path, result.error.message)

    def walk(self, directory: str) -> bool:
        """Depth-first walk; returns False once cancellation is observed."""
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as exc:
            self._fail(directory, FileSystemError.from_os_error("list", directory, exc).message)
            return True

        if self.limits.sort_entries:
            entries.sort(key=lambda entry: entry.name)

        for entry in entries:
            if self.cancel is not None and self.cancel.is_cancelled():
                self.cancelled = True
                return False
            try:
                if entry.is_symlink():
                    logger.debug(f"Batch: not following symlink {entry.path}")
                    continue
                if entry.is_dir(follow_symlinks=False):
                    if not self.walk(entry.path):
                        return False
                elif entry.is_file(follow_symlinks=False):
                    self.process_file(entry.path)
            except (OSError, ValueError, TypeError, RuntimeError) as e:
                self._fail(entry.path, str(e))
        return True


def _run_batch(plan: _BatchPlan, path: str, password: Password, limits: TransformLimits,
               cancel: Optional[CancellationToken], progress: Optional[ProgressCallback]) -> BatchResult:
    try:
        validate_directory(path, password)
    except FoldSealError as e:
        logger.warning(f"Directory operation rejected for {path}: {e}")
        return BatchResult.failed(e)

    run = _BatchRun(plan, password, limits, cancel, progress)
    run.walk(path)
    stats = run.stats.freeze()
    count = stats.encrypted_count if plan.encrypting else stats.decrypted_count
    message = f"Directory {plan.verb}: {count} files processed"
    if run.cancelled:
        message += " (cancelled)"
    logger.info(
        f"{message}, {stats.skipped_count} skipped, {stats.failed_count} failed"
    )
    return BatchResult(success=True, statistics=stats, message=message, cancelled=run.cancelled)


def encrypt_directory(path: str, password: Password, limits: TransformLimits = DEFAULT_LIMITS,
                      cancel: Optional[CancellationToken] = None,
                      progress: Optional[ProgressCallback] = None) -> BatchResult:
    """Recursively encrypt every plaintext file under path."""
    return _run_batch(_ENCRYPT_PLAN, path, password, limits, cancel, progress)


def decrypt_directory(path: str, password: Password, limits: TransformLimits = DEFAULT_LIMITS,
                      cancel: Optional[CancellationToken] = None,
                      progress: Optional[ProgressCallback] = None) -> BatchResult:
    """Recursively decrypt every container under path."""
    return _run_batch(_DECRYPT_PLAN, path, password, limits, cancel, progress)
