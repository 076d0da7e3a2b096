import json

import pytest

from foldseal.core.container import (
    build_container,
    compute_signature,
    find_metadata_end,
    is_container,
    make_metadata,
    parse_container,
    parse_header,
)
from foldseal.core.errors import CorruptedMetadataError, HeaderIncomplete
from foldseal.core.format_config import MARKER, MARKER_SIZE


def _container(filename="a.txt", encoding="utf-8", payload=b"P" * 48):
    return build_container(payload, make_metadata(filename, encoding, b"plain"))


def test_marker_is_literal():
    assert MARKER == b"[FOLDSEAL_ENCRYPTED:]"


def test_detection_boundary():
    assert is_container(MARKER + b"{}")
    assert is_container(MARKER)
    assert not is_container(MARKER[:-1])
    assert not is_container(b" " + MARKER)
    assert parse_container(MARKER[:-1] + b"{}") is None


def test_header_layout_and_key_order():
    data = _container(filename="hello.txt")
    end = find_metadata_end(data)
    header = json.loads(data[MARKER_SIZE:end])
    assert list(header) == ["filename", "encoding", "version", "signature"]
    assert header["filename"] == "hello.txt"
    assert header["version"] == 1
    assert header["signature"] == compute_signature(b"plain")
    assert data[end:] == b"P" * 48


def test_parse_round_trip():
    parsed = parse_container(_container(encoding="binary"))
    assert parsed.metadata.encoding == "binary"
    assert parsed.payload == b"P" * 48


def test_brace_and_quote_in_filename():
    name = 'we}ird {"name"}.txt'
    parsed = parse_container(_container(filename=name))
    assert parsed.metadata.filename == name
    assert parsed.payload == b"P" * 48


def test_non_ascii_filename():
    parsed = parse_container(_container(filename="résumé 東京.txt"))
    assert parsed.metadata.filename == "résumé 東京.txt"


def test_payload_may_contain_braces():
    parsed = parse_container(_container(payload=b"}}{{" * 12))
    assert parsed.payload == b"}}{{" * 12


def test_missing_closing_brace_is_corrupted():
    with pytest.raises(CorruptedMetadataError):
        parse_container(MARKER + b'{"filename":"a"')


def test_invalid_json_is_corrupted():
    with pytest.raises(CorruptedMetadataError):
        parse_container(MARKER + b"{not json}payload")


def test_missing_fields_are_corrupted():
    with pytest.raises(CorruptedMetadataError):
        parse_container(MARKER + b'{"filename":"a"}payload')


def test_garbage_after_marker_is_corrupted():
    with pytest.raises(CorruptedMetadataError):
        parse_container(MARKER + b"xyz")


def test_unsupported_version():
    header = b'{"filename":"a","encoding":"utf-8","version":2,"signature":"' + b"ab" * 32 + b'"}'
    with pytest.raises(CorruptedMetadataError):
        parse_container(MARKER + header + b"P")


def test_parse_header_incomplete_vs_corrupt():
    data = _container()
    prefix = data[:MARKER_SIZE + 10]
    with pytest.raises(HeaderIncomplete):
        parse_header(prefix, at_eof=False)
    with pytest.raises(CorruptedMetadataError):
        parse_header(prefix, at_eof=True)
    assert parse_header(b"plain text", at_eof=True) is None
    assert parse_header(data, at_eof=True).filename == "a.txt"


@pytest.mark.parametrize(
    "signature",
    ["é", "00", "AB" * 32, "zz" * 32, "ab" * 33],
)
def test_malformed_signature_is_corrupted(signature):
    header = json.dumps(
        {"filename": "a.txt", "encoding": "utf-8", "version": 1, "signature": signature}
    ).encode("ascii")
    with pytest.raises(CorruptedMetadataError):
        parse_container(MARKER + header + b"P" * 48)
