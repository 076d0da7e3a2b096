"""
File format configuration for FoldSeal encrypted containers.

Container layout:
  - marker (ASCII literal, 21 bytes): [FOLDSEAL_ENCRYPTED:]
  - metadata: compact JSON object, ASCII only
      {"filename": str, "encoding": str, "version": int, "signature": hex str}
  - payload:
      salt (16 bytes)
      iv (16 bytes)
      ciphertext (AES-256-CBC, PKCS7 padded, variable)

The signature is the SHA-256 of the plaintext bytes handed to the cipher.
"""

ENCRYPTION_PREFIX = "FOLDSEAL_ENCRYPTED:"
MARKER = f"[{ENCRYPTION_PREFIX}]".encode("ascii")
MARKER_SIZE = len(MARKER)

HEADER_VERSION = 1
BINARY_ENCODING = "binary"

SALT_SIZE = 16
IV_SIZE = 16
BLOCK_SIZE = 16
KEY_SIZE = 32

# Argon2id cost parameters, fixed for HEADER_VERSION=1 files.
DEFAULT_KDF_TIME_COST = 3
DEFAULT_KDF_MEMORY_COST_KIB = 65536
DEFAULT_KDF_PARALLELISM = 1

MIN_PAYLOAD_SIZE = SALT_SIZE + IV_SIZE + BLOCK_SIZE

MAX_FILE_SIZE = 50 * 1024 * 1024
MAX_PREVIEW_FILE_SIZE = 10 * 1024 * 1024
MAX_TEXT_EDIT_SIZE = 10 * 1024 * 1024

# Header-only reads start small and grow up to the hard cap.
HEADER_READ_SIZE = 4096
MAX_HEADER_BYTES = 64 * 1024

DETECT_SAMPLE_SIZE = 64 * 1024
CHARDET_CONFIDENCE_THRESHOLD = 0.5

DEFAULT_MIME_TYPE = "application/octet-stream"
ENCRYPTED_SUFFIX = ".enc"
