from foldseal.core.content import TextContent
from foldseal.core.encoding import decode_text, detect_encoding, looks_binary, normalize_encoding


def test_empty_buffer_is_utf8():
    assert detect_encoding(b"") == "utf-8"


def test_ascii_is_reported_as_utf8():
    assert detect_encoding(b"Hello, World!\n") == "utf-8"


def test_utf8_text_detected():
    data = "Grüße aus Köln, naïve café, 東京\n".encode("utf-8") * 20
    assert detect_encoding(data) == "utf-8"


def test_nul_bytes_are_binary():
    data = bytes(range(256)) * 8
    assert looks_binary(data)
    assert detect_encoding(data) == "binary"


def test_png_header_is_binary():
    data = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + bytes(200)
    assert detect_encoding(data) == "binary"


def test_normalize_encoding():
    assert normalize_encoding("ascii") == "utf-8"
    assert normalize_encoding("UTF-8") == "utf-8"
    assert normalize_encoding("ISO-8859-1") == "iso-8859-1"
    assert normalize_encoding("Windows-1252") == "windows-1252"
    assert normalize_encoding("no-such-codec") == "binary"
    assert normalize_encoding(None) == "binary"


def test_decode_text_requires_exact_round_trip():
    assert decode_text(b"plain", "utf-8") == TextContent("plain", "utf-8")
    assert decode_text(b"\xff\xfe\x00", "utf-8") is None
    assert decode_text(b"anything", "binary") is None
