"""Read-only access to Microsoft cabinet (``MSCF``) containers.

Only single-volume cabinets are handled, and only stored and MSZIP folders can
be inflated; Quantum and LZX folders still list normally but raise
:class:`UnsupportedCompressionError` when an entry inside them is opened.
"""

from __future__ import annotations

import enum
import io
import logging
import struct
import zlib
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple

from .errors import CabinetFormatError, UnsupportedCompressionError
from .text import decode_bytes

LOGGER = logging.getLogger(__name__)

SIGNATURE = b"MSCF"

_CFHEADER = struct.Struct("<4sIIIIIBBHHHHH")
_CFRESERVE = struct.Struct("<HBB")
_CFFOLDER = struct.Struct("<IHH")
_CFFILE = struct.Struct("<IIHHHH")
_CFDATA = struct.Struct("<IHH")

_FLAG_PREV_CABINET = 0x0001
_FLAG_NEXT_CABINET = 0x0002
_FLAG_RESERVE_PRESENT = 0x0004

_ATTRIBUTE_NAME_IS_UTF = 0x80
_CONTINUED_FOLDER_MIN = 0xFFFD
_MSZIP_WINDOW = 32 * 1024


class CompressionMethod(enum.IntEnum):
    """Low nibble of a CFFOLDER ``typeCompress`` field."""

    NONE = 0
    MSZIP = 1
    QUANTUM = 2
    LZX = 3


@dataclass(frozen=True)
class CabinetFolder:
    """A run of CFDATA blocks sharing one compression stream."""

    index: int
    data_offset: int
    block_count: int
    compression: CompressionMethod
    compression_param: int


@dataclass(frozen=True)
class CabinetEntry:
    """One stored member of the cabinet."""

    name: str
    size: int
    folder_index: int
    folder_offset: int
    timestamp: Optional[datetime]
    attributes: int
    compression: CompressionMethod


def decode_dos_timestamp(date: int, time: int) -> Optional[datetime]:
    """Convert a DOS date/time pair; a zero or impossible date yields ``None``."""

    if date == 0:
        return None
    try:
        return datetime(
            1980 + (date >> 9),
            (date >> 5) & 0x0F,
            date & 0x1F,
            time >> 11,
            (time >> 5) & 0x3F,
            (time & 0x1F) * 2,
        )
    except ValueError:
        return None


def _read_cstring(data: bytes, offset: int) -> Tuple[bytes, int]:
    end = data.find(b"\x00", offset)
    if end == -1:
        raise CabinetFormatError(f"unterminated string at offset {offset}")
    return data[offset:end], end + 1


def _unpack(layout: struct.Struct, data: bytes, offset: int, what: str) -> Tuple:
    if offset + layout.size > len(data):
        raise CabinetFormatError(f"{what} truncated at offset {offset}")
    return layout.unpack_from(data, offset)


class CabinetArchive:
    """Lists and inflates the members of an in-memory cabinet image."""

    def __init__(self, data: bytes):
        self._data = data
        self._folder_cache: Dict[int, bytes] = {}
        self._data_reserve = 0
        self.folders: List[CabinetFolder] = []
        self._entries: List[CabinetEntry] = []
        self._parse()

    @classmethod
    def load(cls, path: Path | str) -> "CabinetArchive":
        with open(Path(path), "rb") as source:
            return cls(source.read())

    def iter_entries(self) -> Iterator[CabinetEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, name: str) -> Optional[CabinetEntry]:
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    def open_entry(self, name: str) -> BinaryIO:
        """Return the decompressed bytes of ``name`` as a binary stream."""

        return io.BytesIO(self.read_entry(name))

    def read_entry(self, name: str) -> bytes:
        entry = self.get_entry(name)
        if entry is None:
            available = ", ".join(e.name for e in self._entries)
            raise FileNotFoundError(f"{name!r} not found (available: {available})")
        if entry.folder_index >= _CONTINUED_FOLDER_MIN:
            raise CabinetFormatError(
                f"{name!r} continues into another cabinet volume"
            )
        payload = self._folder_bytes(entry.folder_index)
        end = entry.folder_offset + entry.size
        if end > len(payload):
            raise CabinetFormatError(
                f"{name!r} extends past the end of folder {entry.folder_index}"
            )
        return payload[entry.folder_offset : end]

    def _parse(self) -> None:
        data = self._data
        (
            signature,
            _reserved1,
            cabinet_size,
            _reserved2,
            files_offset,
            _reserved3,
            version_minor,
            version_major,
            folder_count,
            file_count,
            flags,
            _set_id,
            _cabinet_index,
        ) = _unpack(_CFHEADER, data, 0, "CFHEADER")
        if signature != SIGNATURE:
            raise CabinetFormatError(f"expected cabinet signature {SIGNATURE!r}, found {signature!r}")
        if cabinet_size > len(data):
            raise CabinetFormatError(
                f"cabinet declares {cabinet_size} bytes but only {len(data)} are present"
            )
        LOGGER.debug(
            "cabinet v%d.%d: %d folder(s), %d file(s)",
            version_major,
            version_minor,
            folder_count,
            file_count,
        )

        offset = _CFHEADER.size
        folder_reserve = 0
        if flags & _FLAG_RESERVE_PRESENT:
            header_reserve, folder_reserve, self._data_reserve = _unpack(
                _CFRESERVE, data, offset, "reserve header"
            )
            offset += _CFRESERVE.size + header_reserve
        for flag in (_FLAG_PREV_CABINET, _FLAG_NEXT_CABINET):
            if flags & flag:
                # cabinet name followed by disk name
                _, offset = _read_cstring(data, offset)
                _, offset = _read_cstring(data, offset)

        for index in range(folder_count):
            data_offset, block_count, type_compress = _unpack(
                _CFFOLDER, data, offset, f"CFFOLDER {index}"
            )
            offset += _CFFOLDER.size + folder_reserve
            raw_method = type_compress & 0x000F
            try:
                method = CompressionMethod(raw_method)
            except ValueError as exc:
                raise CabinetFormatError(
                    f"folder {index} uses unknown compression type {raw_method}"
                ) from exc
            self.folders.append(
                CabinetFolder(
                    index=index,
                    data_offset=data_offset,
                    block_count=block_count,
                    compression=method,
                    compression_param=(type_compress >> 8) & 0x1F,
                )
            )

        offset = files_offset
        for index in range(file_count):
            size, folder_offset, folder_index, date, time, attributes = _unpack(
                _CFFILE, data, offset, f"CFFILE {index}"
            )
            raw_name, offset = _read_cstring(data, offset + _CFFILE.size)
            if attributes & _ATTRIBUTE_NAME_IS_UTF:
                name = raw_name.decode("utf-8", errors="replace")
            else:
                name = decode_bytes(raw_name)
            if folder_index < _CONTINUED_FOLDER_MIN and folder_index >= len(self.folders):
                raise CabinetFormatError(
                    f"{name!r} references missing folder {folder_index}"
                )
            compression = (
                self.folders[folder_index].compression
                if folder_index < len(self.folders)
                else CompressionMethod.NONE
            )
            self._entries.append(
                CabinetEntry(
                    name=name,
                    size=size,
                    folder_index=folder_index,
                    folder_offset=folder_offset,
                    timestamp=decode_dos_timestamp(date, time),
                    attributes=attributes,
                    compression=compression,
                )
            )

    def _iter_blocks(self, folder: CabinetFolder) -> Iterator[Tuple[bytes, int]]:
        data = self._data
        offset = folder.data_offset
        for index in range(folder.block_count):
            _checksum, compressed_size, uncompressed_size = _unpack(
                _CFDATA, data, offset, f"CFDATA {index} of folder {folder.index}"
            )
            offset += _CFDATA.size + self._data_reserve
            if offset + compressed_size > len(data):
                raise CabinetFormatError(
                    f"CFDATA {index} of folder {folder.index} is truncated"
                )
            yield data[offset : offset + compressed_size], uncompressed_size
            offset += compressed_size

    def _folder_bytes(self, folder_index: int) -> bytes:
        cached = self._folder_cache.get(folder_index)
        if cached is not None:
            return cached

        folder = self.folders[folder_index]
        if folder.compression is CompressionMethod.NONE:
            payload = b"".join(block for block, _ in self._iter_blocks(folder))
        elif folder.compression is CompressionMethod.MSZIP:
            payload = _inflate_mszip(self._iter_blocks(folder), folder.index)
        else:
            raise UnsupportedCompressionError(
                f"folder {folder.index} uses {folder.compression.name} compression"
            )
        self._folder_cache[folder_index] = payload
        return payload


def _inflate_mszip(blocks: Iterator[Tuple[bytes, int]], folder_index: int) -> bytes:
    """Inflate MSZIP blocks; each block is primed with the previous 32 KiB of output."""

    output = bytearray()
    for index, (block, expected) in enumerate(blocks):
        if block[:2] != b"CK":
            raise CabinetFormatError(
                f"MSZIP block {index} of folder {folder_index} lacks the CK signature"
            )
        if output:
            inflater = zlib.decompressobj(
                -zlib.MAX_WBITS, zdict=bytes(output[-_MSZIP_WINDOW:])
            )
        else:
            inflater = zlib.decompressobj(-zlib.MAX_WBITS)
        try:
            chunk = inflater.decompress(block[2:]) + inflater.flush()
        except zlib.error as exc:
            raise CabinetFormatError(
                f"MSZIP block {index} of folder {folder_index} is corrupt: {exc}"
            ) from exc
        if len(chunk) != expected:
            LOGGER.warning(
                "MSZIP block %d of folder %d inflated to %d bytes, expected %d",
                index,
                folder_index,
                len(chunk),
                expected,
            )
        output += chunk
    return bytes(output)


__all__ = [
    "CabinetArchive",
    "CabinetEntry",
    "CabinetFolder",
    "CompressionMethod",
    "SIGNATURE",
    "decode_dos_timestamp",
]
