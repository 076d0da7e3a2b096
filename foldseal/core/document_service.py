from __future__ import annotations

import logging
from types import ModuleType
from typing import Callable, Optional, TypeVar, Union

from .errors import FileSystemError, FoldSealError, ValidationError
from .limits import TransformLimits
from .results import BatchResult, FileReadResult, PreviewResult, TransformResult
from .session_state import SessionState, clear_bytes

logger = logging.getLogger(__name__)

Secret = Optional[Union[str, bytes, bytearray]]
R = TypeVar("R")


class DocumentService:
    """
    Entry point for hosts (CLI, GUI, file-manager integrations).

    Every method returns a result object and never raises. When password is
    None the secret cached in the session is used.
    """

    def __init__(self, preferences=None, session_state: Optional[SessionState] = None):
        self.preferences = preferences
        self.limits = TransformLimits.from_preferences(preferences) if preferences is not None else TransformLimits()
        self.session_state = session_state or SessionState()
        self._cancel_token = None
        self._file_transform: Optional[ModuleType] = None
        self._directory_transform: Optional[ModuleType] = None
        self._in_memory: Optional[ModuleType] = None
        self._file_io: Optional[ModuleType] = None
        self._directory_listing: Optional[ModuleType] = None

    def _ensure_file_transform_api(self) -> ModuleType:
        if self._file_transform is None:
            from . import file_transform

            self._file_transform = file_transform
        return self._file_transform

    def _ensure_directory_transform_api(self) -> ModuleType:
        if self._directory_transform is None:
            from . import directory_transform

            self._directory_transform = directory_transform
        return self._directory_transform

    def _ensure_in_memory_api(self) -> ModuleType:
        if self._in_memory is None:
            from . import in_memory

            self._in_memory = in_memory
        return self._in_memory

    def _ensure_file_io_api(self) -> ModuleType:
        if self._file_io is None:
            from . import file_io

            self._file_io = file_io
        return self._file_io

    def _ensure_directory_listing_api(self) -> ModuleType:
        if self._directory_listing is None:
            from . import directory_listing

            self._directory_listing = directory_listing
        return self._directory_listing

    def unlock(self, password: Union[str, bytes, bytearray]) -> None:
        self.session_state.cache_password(password)

    def lock(self) -> None:
        self.session_state.clear()

    def _resolve_password(self, password: Secret) -> Secret:
        if password is not None:
            return password
        return self.session_state.get_cached_password_bytes()

    def _guard(self, action: str, call: Callable[[Secret], R], password: Secret,
               on_error: Callable[[FoldSealError], R]) -> R:
        secret = self._resolve_password(password)
        try:
            return call(secret)
        except FoldSealError as e:
            return on_error(e)
        except OSError as e:
            logger.error(f"Unexpected I/O error during {action}: {e}")
            return on_error(FileSystemError(f"{action} failed: {e}"))
        except (ValueError, TypeError, RuntimeError) as e:
            logger.error(f"Unexpected error during {action}: {e}")
            return on_error(ValidationError(f"{action} failed: {e}"))
        finally:
            if password is None:
                clear_bytes(secret)

    def encrypt_file(self, path: str, password: Secret = None) -> TransformResult:
        module = self._ensure_file_transform_api()
        return self._guard(
            "Encryption",
            lambda secret: module.encrypt_file(path, secret, self.limits),
            password,
            lambda e: TransformResult.failed(e, path=path),
        )

    def decrypt_file(self, path: str, password: Secret = None) -> TransformResult:
        module = self._ensure_file_transform_api()
        return self._guard(
            "Decryption",
            lambda secret: module.decrypt_file(path, secret, self.limits),
            password,
            lambda e: TransformResult.failed(e, path=path),
        )

    def _new_cancel_token(self):
        token = self._ensure_directory_transform_api().CancellationToken()
        self._cancel_token = token
        return token

    def cancel(self) -> None:
        if self._cancel_token is not None:
            self._cancel_token.cancel()

    def encrypt_directory(self, path: str, password: Secret = None, progress=None) -> BatchResult:
        module = self._ensure_directory_transform_api()
        token = self._new_cancel_token()
        return self._guard(
            "Directory encryption",
            lambda secret: module.encrypt_directory(path, secret, self.limits, cancel=token, progress=progress),
            password,
            BatchResult.failed,
        )

    def decrypt_directory(self, path: str, password: Secret = None, progress=None) -> BatchResult:
        module = self._ensure_directory_transform_api()
        token = self._new_cancel_token()
        return self._guard(
            "Directory decryption",
            lambda secret: module.decrypt_directory(path, secret, self.limits, cancel=token, progress=progress),
            password,
            BatchResult.failed,
        )

    def read_file(self, path: str, header_only: bool = False) -> FileReadResult:
        return self._ensure_file_io_api().read_file(path, header_only=header_only, limits=self.limits)

    def list_directory(self, path: str):
        """Returns (entries, error); entries is None on failure."""
        try:
            return self._ensure_directory_listing_api().get_directory_contents(path, self.limits), None
        except FoldSealError as e:
            return None, e

    def decrypt_for_preview(self, path: str, password: Secret = None) -> PreviewResult:
        module = self._ensure_in_memory_api()
        return self._guard(
            "Preview",
            lambda secret: module.decrypt_in_memory(path, secret, self.limits),
            password,
            PreviewResult.failed,
        )

    def decrypt_text_for_edit(self, path: str, password: Secret = None) -> PreviewResult:
        module = self._ensure_in_memory_api()
        return self._guard(
            "Edit",
            lambda secret: module.decrypt_text_for_edit(path, secret, self.limits),
            password,
            PreviewResult.failed,
        )

    def encrypt_and_save_text(self, path: str, text, password: Secret = None, encoding: str = "utf-8") -> TransformResult:
        module = self._ensure_in_memory_api()
        return self._guard(
            "Save",
            lambda secret: module.encrypt_and_save_text(path, text, secret, encoding=encoding, limits=self.limits),
            password,
            lambda e: TransformResult.failed(e, path=path),
        )

    def encrypt_and_save_image(self, path: str, data, password: Secret = None) -> TransformResult:
        module = self._ensure_in_memory_api()
        return self._guard(
            "Save",
            lambda secret: module.encrypt_and_save_image(path, data, secret, limits=self.limits),
            password,
            lambda e: TransformResult.failed(e, path=path),
        )
