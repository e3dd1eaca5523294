"""Forward-only little-endian reader for ``MSCE`` manifest records."""

from __future__ import annotations

import io
import struct
from typing import BinaryIO, Tuple

from .errors import TruncatedRecordError
from .text import decode_bytes, read_terminated

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


class ManifestReader:
    """Sequential primitive reads over a byte stream.

    The reader never seeks: every table is consumed in stream order, so a
    record that over- or under-reads shifts every later table.
    """

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._position = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "ManifestReader":
        return cls(io.BytesIO(data))

    @property
    def position(self) -> int:
        """Bytes consumed so far."""

        return self._position

    def read_bytes(self, size: int) -> bytes:
        chunk = self._stream.read(size) if size else b""
        if len(chunk) != size:
            raise TruncatedRecordError(
                f"expected {size} bytes at offset {self._position}, got {len(chunk)}"
            )
        self._position += size
        return chunk

    def read_u16(self) -> int:
        return _U16.unpack(self.read_bytes(_U16.size))[0]

    def read_u32(self) -> int:
        return _U32.unpack(self.read_bytes(_U32.size))[0]

    def read_struct(self, layout: struct.Struct) -> Tuple[int, ...]:
        return layout.unpack(self.read_bytes(layout.size))

    def read_u16_array(self, byte_length: int) -> Tuple[int, ...]:
        """Read ``byte_length // 2`` sixteen-bit values."""

        count = byte_length // 2
        if not count:
            return ()
        return struct.unpack(f"<{count}H", self.read_bytes(count * 2))

    def read_text(self, pad_to: int = 0) -> str:
        """Read a null-terminated string and skip any padding up to ``pad_to`` bytes."""

        raw, consumed = read_terminated(self._stream)
        self._position += consumed
        if pad_to > consumed:
            self.read_bytes(pad_to - consumed)
        return decode_bytes(raw)


__all__ = ["ManifestReader"]
