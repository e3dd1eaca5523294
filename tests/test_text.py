from __future__ import annotations

import io

import pytest

from ceinstall.errors import TruncatedRecordError
from ceinstall.text import decode_text, encode_text


def test_decode_text_stops_at_terminator() -> None:
    stream = io.BytesIO(b"Caf\xe9\x00rest")

    assert decode_text(stream) == "Café"
    assert stream.read() == b"rest"


def test_decode_text_maps_code_page_specials() -> None:
    assert decode_text(io.BytesIO(b"\x80 \x99\x00")) == "€ ™"


@pytest.mark.parametrize("code", [0x81, 0x8D, 0x8F, 0x90, 0x9D])
def test_decode_text_passes_undefined_bytes_through(code: int) -> None:
    assert decode_text(io.BytesIO(bytes([0x61, code, 0]))) == "a" + chr(code)


@pytest.mark.parametrize("code", [0x81, 0x8D, 0x8F, 0x90, 0x9D])
def test_encode_text_restores_undefined_bytes(code: int) -> None:
    assert encode_text("a" + chr(code)) == bytes([0x61, code, 0])


def test_encode_text_replaces_characters_outside_code_page() -> None:
    assert encode_text("a中b") == b"a?b\x00"


def test_decode_text_requires_terminator() -> None:
    with pytest.raises(TruncatedRecordError):
        decode_text(io.BytesIO(b"no terminator"))


def test_encode_text_appends_terminator_and_pads() -> None:
    assert encode_text("Café") == b"Caf\xe9\x00"
    assert encode_text("ab", pad_to=6) == b"ab\x00\x00\x00\x00"


def test_encode_text_never_truncates() -> None:
    assert encode_text("abcdef", pad_to=2) == b"abcdef\x00"
