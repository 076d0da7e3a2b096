import unicodedata
from typing import Optional, Union

from argon2.low_level import hash_secret_raw, Type
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from nacl.utils import random as nacl_random

from .content import BinaryContent, Content, TextContent
from .errors import DecryptionFailedError, ValidationError
from .format_config import (
    BINARY_ENCODING,
    BLOCK_SIZE,
    DEFAULT_KDF_MEMORY_COST_KIB,
    DEFAULT_KDF_PARALLELISM,
    DEFAULT_KDF_TIME_COST,
    IV_SIZE,
    KEY_SIZE,
    MIN_PAYLOAD_SIZE,
    SALT_SIZE,
)

Password = Union[str, bytes, bytearray]


def _normalize_password_bytes(password: Password) -> bytes:
    if isinstance(password, str):
        normalized = unicodedata.normalize("NFKC", password)
        return normalized.encode("utf-8")
    if isinstance(password, (bytes, bytearray)):
        return bytes(password)
    raise TypeError("password must be str, bytes, or bytearray")


def _require_password(password: Optional[Password]) -> None:
    if password is None:
        raise ValidationError("Password is required")
    if not isinstance(password, (str, bytes, bytearray)):
        raise ValidationError("Password must be str, bytes, or bytearray")
    if len(password) == 0:
        raise ValidationError("Password is required")


def derive_key_from_password(password: Password, salt: bytes) -> bytes:
    """
    Normalize the password and derive a fixed-length key using Argon2id.
    """
    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes")

    # Normalize to avoid multiple Unicode representations of the same password.
    normalized = _normalize_password_bytes(password)
    return hash_secret_raw(
        secret=normalized,
        salt=bytes(salt),
        time_cost=DEFAULT_KDF_TIME_COST,
        memory_cost=DEFAULT_KDF_MEMORY_COST_KIB,
        parallelism=DEFAULT_KDF_PARALLELISM,
        hash_len=KEY_SIZE,
        type=Type.ID
    )


def encrypt_bytes(data: bytes, password: Password) -> bytes:
    """Encrypt data and return salt || iv || ciphertext."""
    if data is None:
        raise ValidationError("Content is required")
    if len(data) == 0:
        raise ValidationError("Content is empty")
    _require_password(password)

    salt = nacl_random(SALT_SIZE)
    iv = nacl_random(IV_SIZE)
    key = derive_key_from_password(password, salt)

    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(bytes(data)) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return salt + iv + ciphertext


def decrypt_bytes(payload: bytes, password: Password) -> bytes:
    """
    Reverse encrypt_bytes. Padding errors are the (imperfect) wrong-password signal.
    """
    if payload is None:
        raise ValidationError("Encrypted content is required")
    _require_password(password)

    if len(payload) < MIN_PAYLOAD_SIZE or (len(payload) - SALT_SIZE - IV_SIZE) % BLOCK_SIZE:
        raise DecryptionFailedError("Encrypted data is truncated or corrupted")

    salt = payload[:SALT_SIZE]
    iv = payload[SALT_SIZE:SALT_SIZE + IV_SIZE]
    ciphertext = payload[SALT_SIZE + IV_SIZE:]
    key = derive_key_from_password(password, salt)

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        plain = unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise DecryptionFailedError("Failed to decrypt - invalid password or corrupted file") from exc

    if not plain:
        raise DecryptionFailedError("Decryption failed - incorrect password or corrupted data")
    return plain


def encrypt_content(content: Content, password: Password) -> bytes:
    """Text travels through the cipher as UTF-8, binary as-is."""
    if content is None:
        raise ValidationError("Content is required")
    return encrypt_bytes(content.transport_bytes(), password)


def decrypt_content(payload: bytes, password: Password, encoding: str) -> Content:
    plain = decrypt_bytes(payload, password)
    return content_from_transport(plain, encoding)


def content_from_transport(plain: bytes, encoding: str) -> Content:
    if encoding == BINARY_ENCODING:
        return BinaryContent(plain)
    try:
        text = plain.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionFailedError("Decrypted text is not valid UTF-8 - incorrect password or corrupted data") from exc
    return TextContent(text, encoding)
