import os
import unicodedata
from time import monotonic
from typing import Optional, Union


def clear_bytes(buffer: Optional[bytearray]) -> None:
    if isinstance(buffer, bytearray):
        for i in range(len(buffer)):
            buffer[i] = 0


class SessionState:
    """
    Holds the unlocking secret (typed password or hardware-derived key)
    between preview/edit operations.
    """

    def __init__(self, idle_minutes: int = 5):
        self.cached_password: Optional[bytearray] = None
        self.idle_minutes = max(1, int(idle_minutes))
        self._secret_mask = os.urandom(32)
        self._last_used_at: Optional[float] = None

    def _xor_with_mask(self, data: Union[bytes, bytearray]) -> bytearray:
        mask = self._secret_mask
        return bytearray(b ^ mask[i % len(mask)] for i, b in enumerate(bytes(data)))

    def cache_password(self, password: Union[str, bytes, bytearray]) -> None:
        if isinstance(password, str):
            password = unicodedata.normalize("NFKC", password).encode("utf-8")
        self.clear()
        self.cached_password = self._xor_with_mask(password)
        self._last_used_at = monotonic()

    def is_expired(self) -> bool:
        if self._last_used_at is None:
            return True
        return monotonic() - self._last_used_at >= self.idle_minutes * 60

    def has_cached_password(self) -> bool:
        return self.cached_password is not None and not self.is_expired()

    def get_cached_password_bytes(self) -> Optional[bytearray]:
        if self.cached_password is None:
            return None
        if self.is_expired():
            self.clear()
            return None
        self._last_used_at = monotonic()
        return self._xor_with_mask(self.cached_password)

    def clear(self) -> None:
        clear_bytes(self.cached_password)
        self.cached_password = None
        self._last_used_at = None
