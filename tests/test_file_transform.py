import json
import os

import pytest

from foldseal.core.container import compute_signature, find_metadata_end
from foldseal.core.errors import ErrorKind
from foldseal.core.file_transform import decrypt_file, encrypt_file
from foldseal.core.format_config import MARKER, MARKER_SIZE, SALT_SIZE, IV_SIZE
from foldseal.core.limits import TransformLimits


def _header(data: bytes) -> dict:
    return json.loads(data[MARKER_SIZE:find_metadata_end(data)])


def test_hello_scenario(tmp_path):
    path = tmp_path / "hello.txt"
    path.write_bytes(b"Hello, World!")

    result = encrypt_file(str(path), "pw")
    assert result.success
    assert result.message == "File encrypted successfully"

    data = path.read_bytes()
    assert data.startswith(MARKER)
    header = _header(data)
    assert header == {
        "filename": "hello.txt",
        "encoding": "utf-8",
        "version": 1,
        "signature": compute_signature(b"Hello, World!"),
    }
    payload = data[find_metadata_end(data):]
    # 13 bytes of plaintext pad to a single block
    assert len(payload) == SALT_SIZE + IV_SIZE + 16

    result = decrypt_file(str(path), "pw")
    assert result.success
    assert path.read_bytes() == b"Hello, World!"


def test_double_encrypt_refused_and_bytes_unchanged(tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"some text")
    assert encrypt_file(str(path), "pw").success
    before = path.read_bytes()

    result = encrypt_file(str(path), "pw")
    assert not result.success
    assert result.error_kind is ErrorKind.ALREADY_ENCRYPTED
    assert path.read_bytes() == before


def test_decrypting_plaintext_refused(tmp_path):
    path = tmp_path / "plain.txt"
    path.write_bytes(b"not encrypted")
    result = decrypt_file(str(path), "pw")
    assert result.error_kind is ErrorKind.NOT_ENCRYPTED
    assert path.read_bytes() == b"not encrypted"


def test_wrong_password_leaves_container_untouched(tmp_path):
    path = tmp_path / "secret.txt"
    path.write_bytes(b"the launch codes")
    encrypt_file(str(path), "right")
    before = path.read_bytes()

    result = decrypt_file(str(path), "wrong")
    assert not result.success
    assert result.error_kind is ErrorKind.DECRYPTION_FAILED
    assert result.error_message.startswith("Decryption Failed:")
    assert path.read_bytes() == before


def test_binary_fidelity(tmp_path):
    original = bytes(range(256)) * 64
    path = tmp_path / "image.png"
    path.write_bytes(original)

    encrypt_file(str(path), "pw")
    assert _header(path.read_bytes())["encoding"] == "binary"
    decrypt_file(str(path), "pw")
    assert path.read_bytes() == original


def test_legacy_encoding_fidelity(tmp_path):
    original = ("Le cœur a ses raisons que la raison ne connaît point. " * 40).encode("windows-1252")
    path = tmp_path / "pascal.txt"
    path.write_bytes(original)

    encrypt_file(str(path), "pw")
    assert _header(path.read_bytes())["encoding"] != "utf-8"
    decrypt_file(str(path), "pw")
    assert path.read_bytes() == original


def test_utf8_fidelity(tmp_path):
    original = "Ünïcödé ✓ 漢字\r\nsecond line\n".encode("utf-8")
    path = tmp_path / "u.txt"
    path.write_bytes(original)
    encrypt_file(str(path), "pw")
    decrypt_file(str(path), "pw")
    assert path.read_bytes() == original


def test_empty_file_rejected(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_bytes(b"")
    result = encrypt_file(str(path), "pw")
    assert result.error_kind is ErrorKind.VALIDATION
    assert path.read_bytes() == b""


def test_missing_password_and_path(tmp_path):
    path = tmp_path / "a.txt"
    path.write_bytes(b"x")
    assert encrypt_file(str(path), "").error_kind is ErrorKind.VALIDATION
    assert encrypt_file(str(path), None).error_kind is ErrorKind.VALIDATION
    assert encrypt_file("", "pw").error_kind is ErrorKind.VALIDATION


def test_size_ceiling(tmp_path):
    limits = TransformLimits(max_file_size=100)
    path = tmp_path / "big.txt"
    path.write_bytes(b"a" * 101)
    result = encrypt_file(str(path), "pw", limits)
    assert result.error_kind is ErrorKind.SIZE_EXCEEDED
    assert path.read_bytes() == b"a" * 101


def test_tampered_payload_fails(tmp_path):
    path = tmp_path / "t.txt"
    path.write_bytes(b"tamper with me " * 10)
    encrypt_file(str(path), "pw")
    data = bytearray(path.read_bytes())
    data[-20] ^= 0xFF
    path.write_bytes(bytes(data))
    result = decrypt_file(str(path), "pw")
    assert result.error_kind is ErrorKind.DECRYPTION_FAILED


def test_corrupted_header(tmp_path):
    path = tmp_path / "c.txt"
    path.write_bytes(MARKER + b'{"filename":"c.txt"')
    result = decrypt_file(str(path), "pw")
    assert result.error_kind is ErrorKind.CORRUPTED_METADATA


def _link_or_skip(make_link, source, link):
    try:
        make_link(source, link)
    except (OSError, NotImplementedError, AttributeError):
        pytest.skip("links unavailable")


def test_encrypt_through_symlink_seals_target(tmp_path):
    real = tmp_path / "real.txt"
    real.write_bytes(b"top secret plaintext")
    link = tmp_path / "link.txt"
    _link_or_skip(os.symlink, real, link)

    result = encrypt_file(str(link), "pw")
    assert result.success
    assert link.is_symlink()
    assert real.read_bytes().startswith(MARKER)

    assert decrypt_file(str(link), "pw").success
    assert link.is_symlink()
    assert real.read_bytes() == b"top secret plaintext"


def test_encrypt_hard_linked_file_updates_every_link(tmp_path):
    first = tmp_path / "first.txt"
    first.write_bytes(b"shared plaintext")
    second = tmp_path / "second.txt"
    _link_or_skip(os.link, first, second)

    assert encrypt_file(str(first), "pw").success
    assert second.read_bytes().startswith(MARKER)
    assert os.stat(first).st_ino == os.stat(second).st_ino

    assert decrypt_file(str(second), "pw").success
    assert first.read_bytes() == b"shared plaintext"


def test_non_hex_signature_is_reported_not_raised(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_bytes(b"signed contents")
    encrypt_file(str(path), "pw")
    data = path.read_bytes()
    end = find_metadata_end(data)
    header = _header(data)
    header["signature"] = "é"
    path.write_bytes(MARKER + json.dumps(header).encode("ascii") + data[end:])
    before = path.read_bytes()

    result = decrypt_file(str(path), "pw")
    assert not result.success
    assert result.error_kind is ErrorKind.CORRUPTED_METADATA
    assert path.read_bytes() == before
