"""Windows-1252 null-terminated text helpers used by ``MSCE`` manifests."""
from __future__ import annotations

from typing import BinaryIO, Final

from .errors import TruncatedRecordError

CODEC: Final[str] = "cp1252"
TERMINATOR: Final[bytes] = b"\x00"


def read_terminated(stream: BinaryIO) -> tuple[bytes, int]:
    """Return raw bytes before the terminator and the count consumed (terminator included)."""

    collected = bytearray()
    while True:
        byte = stream.read(1)
        if not byte:
            raise TruncatedRecordError(
                f"unterminated text after {len(collected)} bytes"
            )
        if byte == TERMINATOR:
            return bytes(collected), len(collected) + 1
        collected += byte


def _decode_byte(code: int) -> str:
    try:
        return bytes((code,)).decode(CODEC)
    except UnicodeDecodeError:
        # 0x81, 0x8D, 0x8F, 0x90 and 0x9D pass through as C1 controls
        return chr(code)


_DECODE_TABLE: Final[tuple[str, ...]] = tuple(_decode_byte(code) for code in range(256))

_ENCODE_TABLE: Final[dict[str, int]] = {
    glyph: code for code, glyph in enumerate(_DECODE_TABLE)
}

_REPLACEMENT_BYTE: Final[int] = 0x3F


def decode_bytes(raw: bytes) -> str:
    """Translate ``raw`` through the legacy code page; every byte has a mapping."""

    return "".join(_DECODE_TABLE[code] for code in raw)


def decode_text(stream: BinaryIO) -> str:
    """Read one null-terminated Windows-1252 string from ``stream``.

    Only the bytes up to and including the terminator are consumed; padding
    after the terminator is left for the caller to skip.
    """

    raw, _ = read_terminated(stream)
    return decode_bytes(raw)


def encode_text(text: str, pad_to: int | None = None) -> bytes:
    """Encode ``text`` with a trailing terminator, zero-padded up to ``pad_to`` bytes.

    Characters outside the code page become ``?``.
    """

    encoded = (
        bytes(_ENCODE_TABLE.get(char, _REPLACEMENT_BYTE) for char in text) + TERMINATOR
    )
    if pad_to is not None and pad_to > len(encoded):
        encoded += TERMINATOR * (pad_to - len(encoded))
    return encoded


__all__ = ["CODEC", "decode_bytes", "decode_text", "encode_text", "read_terminated"]
