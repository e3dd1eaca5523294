"""Decoder for the ``MSCE`` installer manifest stored as a cabinet's ``.000`` member.

The manifest is a header followed by three inline strings and six counted
tables laid out back to back.  Directory paths are spliced together from the
shared string table, and file paths are built on top of the directory table;
the resulting extension redirect map tells the planner where each anonymized
``NAME.nnn`` cabinet member really belongs.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO, Callable, Dict, Final, Iterable, List, Mapping, Sequence, Tuple, TypeVar

from .binary_reader import ManifestReader
from .errors import MagicMismatchError, ManifestDecodeError

LOGGER = logging.getLogger(__name__)

MAGIC: Final[bytes] = b"MSCE"

_HEADER_FIELDS = struct.Struct("<11I6H6I8H")
HEADER_SIZE: Final[int] = len(MAGIC) + _HEADER_FIELDS.size

_FILE_FIELDS = struct.Struct("<HHHIH")
_HIVE_FIELDS = struct.Struct("<HHHH")
_KEY_FIELDS = struct.Struct("<HHHIH")
_LINK_FIELDS = struct.Struct("<HHHHHH")

ARCHITECTURES: Final[Dict[int, str]] = {
    0: "any",
    103: "SH3",
    104: "SH4",
    386: "Intel 386",
    486: "Intel 486",
    586: "Intel Pentium",
    601: "PowerPC 601",
    821: "PowerPC 821",
    2577: "StrongARM",
    4000: "MIPS R4000",
    10003: "Hitachi SH3",
    10004: "Hitachi SH3E",
    10005: "Hitachi SH4",
    70001: "ARM 720",
}


@dataclass(frozen=True)
class Header:
    """Fixed 100-byte manifest header.

    The ``offset_*`` fields are carried for inspection only; tables are read
    sequentially and those offsets are never followed.
    """

    unk_04: int
    file_length: int
    unk_12: int
    unk_16: int
    target_architecture: int
    min_ce_version_major: int
    min_ce_version_minor: int
    max_ce_version_major: int
    max_ce_version_minor: int
    min_ce_build_number: int
    max_ce_build_number: int
    num_strings: int
    num_dirs: int
    num_files: int
    num_reg_hives: int
    num_reg_keys: int
    num_links: int
    offset_strings: int
    offset_dirs: int
    offset_files: int
    offset_reg_hives: int
    offset_reg_keys: int
    offset_links: int
    offset_app_name: int
    length_app_name: int
    offset_provider: int
    length_provider: int
    offset_unsupported: int
    length_unsupported: int
    unk_96: int
    unk_98: int

    @property
    def architecture_name(self) -> str:
        return ARCHITECTURES.get(
            self.target_architecture, f"unknown ({self.target_architecture})"
        )

    @property
    def min_ce_version(self) -> Tuple[int, int]:
        return self.min_ce_version_major, self.min_ce_version_minor

    @property
    def max_ce_version(self) -> Tuple[int, int]:
        return self.max_ce_version_major, self.max_ce_version_minor


@dataclass(frozen=True)
class DirectoryEntry:
    """Directory record whose path is the concatenation of its spec strings."""

    id: int
    spec_ids: Tuple[int, ...]
    path: str


@dataclass(frozen=True)
class FileEntry:
    """File record resolved against the directory table."""

    id: int
    directory_id: int
    extension_id: int
    flags: int
    name_length: int
    name: str
    file_path: str

    @property
    def extension_key(self) -> str:
        return format_extension_key(self.extension_id)


@dataclass(frozen=True)
class RegistryHiveEntry:
    id: int
    root: int
    unk_04: int
    spec_ids: Tuple[int, ...]


@dataclass(frozen=True)
class RegistryKeyEntry:
    id: int
    hive_id: int
    variable_substitution: int
    flags: int
    data: bytes


@dataclass(frozen=True)
class LinkEntry:
    id: int
    unk_02: int
    base_directory: int
    target_id: int
    link_type: int
    spec_ids: Tuple[int, ...]


@dataclass(frozen=True)
class Manifest:
    """Fully decoded manifest; ``file_mapping`` is the extension redirect map."""

    header: Header
    app_name: str
    provider: str
    unsupported: str
    strings: Mapping[int, str]
    directories: Mapping[int, str]
    files: Tuple[FileEntry, ...]
    reg_hives: Tuple[RegistryHiveEntry, ...]
    reg_keys: Tuple[RegistryKeyEntry, ...]
    links: Tuple[LinkEntry, ...]
    file_mapping: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("strings", "directories", "file_mapping"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def destination_for(self, extension: str) -> str | None:
        """Return the redirected path for a three-digit ``extension`` tag."""

        return self.file_mapping.get(extension)


_T = TypeVar("_T")


def _read_table(
    reader: ManifestReader,
    table: str,
    count: int,
    read_record: Callable[[ManifestReader], _T],
) -> List[_T]:
    records: List[_T] = []
    for index in range(count):
        try:
            records.append(read_record(reader))
        except ManifestDecodeError as exc:
            raise exc.with_context(table, index) from exc
    LOGGER.debug("decoded %d %s record(s)", count, table)
    return records


def decode_header(reader: ManifestReader) -> Header:
    """Read and validate the fixed header."""

    try:
        magic = reader.read_bytes(len(MAGIC))
    except ManifestDecodeError as exc:
        raise MagicMismatchError(
            "manifest is too short to carry the MSCE tag", table="header"
        ) from exc
    if magic != MAGIC:
        raise MagicMismatchError(
            f"expected manifest tag {MAGIC!r}, found {magic!r}", table="header"
        )
    try:
        values = reader.read_struct(_HEADER_FIELDS)
    except ManifestDecodeError as exc:
        raise exc.with_context("header") from exc
    return Header(*values)


def read_string_entry(reader: ManifestReader) -> Tuple[int, str]:
    string_id = reader.read_u16()
    reader.read_u16()  # declared length; the terminator governs the read
    return string_id, reader.read_text()


def read_shared_strings(reader: ManifestReader, count: int) -> Dict[int, str]:
    """Return the id to text mapping for ``count`` string records."""

    return dict(_read_table(reader, "strings", count, read_string_entry))


def resolve_spec_path(spec_ids: Iterable[int], strings: Mapping[int, str]) -> str:
    """Concatenate the strings named by ``spec_ids``; unknown ids contribute nothing."""

    return "".join(strings[spec_id] for spec_id in spec_ids if spec_id in strings)


def read_directory_entry(
    reader: ManifestReader, strings: Mapping[int, str]
) -> DirectoryEntry:
    directory_id = reader.read_u16()
    spec_ids = reader.read_u16_array(reader.read_u16())
    return DirectoryEntry(
        id=directory_id,
        spec_ids=spec_ids,
        path=resolve_spec_path(spec_ids, strings),
    )


def read_directories(
    reader: ManifestReader, count: int, strings: Mapping[int, str]
) -> Dict[int, str]:
    entries = _read_table(
        reader, "directories", count, lambda r: read_directory_entry(r, strings)
    )
    return {entry.id: entry.path for entry in entries}


def join_file_path(directory: str, name: str) -> str:
    """Append ``name`` to ``directory`` as its final path segment."""

    if not directory:
        return name
    if directory.endswith(("/", "\\")):
        return directory + name
    return f"{directory}/{name}"


def read_file_entry(
    reader: ManifestReader, directories: Mapping[int, str]
) -> FileEntry:
    file_id, directory_id, extension_id, flags, name_length = reader.read_struct(
        _FILE_FIELDS
    )
    name = reader.read_text(pad_to=name_length)
    return FileEntry(
        id=file_id,
        directory_id=directory_id,
        extension_id=extension_id,
        flags=flags,
        name_length=name_length,
        name=name,
        file_path=join_file_path(directories.get(directory_id, ""), name),
    )


def read_files(
    reader: ManifestReader, count: int, directories: Mapping[int, str]
) -> List[FileEntry]:
    return _read_table(
        reader, "files", count, lambda r: read_file_entry(r, directories)
    )


def format_extension_key(extension_id: int) -> str:
    """Format ``extension_id`` the way cabinet members spell it (``7`` -> ``"007"``)."""

    return f"{extension_id:03d}"


def build_file_mapping(files: Sequence[FileEntry]) -> Dict[str, str]:
    """Build the extension redirect map; the last file for a given extension wins."""

    return {entry.extension_key: entry.file_path for entry in files}


def read_registry_hive(reader: ManifestReader) -> RegistryHiveEntry:
    hive_id, root, unk_04, spec_length = reader.read_struct(_HIVE_FIELDS)
    return RegistryHiveEntry(
        id=hive_id,
        root=root,
        unk_04=unk_04,
        spec_ids=reader.read_u16_array(spec_length),
    )


def read_registry_key(reader: ManifestReader) -> RegistryKeyEntry:
    key_id, hive_id, substitution, flags, data_length = reader.read_struct(
        _KEY_FIELDS
    )
    return RegistryKeyEntry(
        id=key_id,
        hive_id=hive_id,
        variable_substitution=substitution,
        flags=flags,
        data=reader.read_bytes(data_length),
    )


def read_link(reader: ManifestReader) -> LinkEntry:
    link_id, unk_02, base_directory, target_id, link_type, spec_length = (
        reader.read_struct(_LINK_FIELDS)
    )
    return LinkEntry(
        id=link_id,
        unk_02=unk_02,
        base_directory=base_directory,
        target_id=target_id,
        link_type=link_type,
        spec_ids=reader.read_u16_array(spec_length),
    )


def read_registry_hives(reader: ManifestReader, count: int) -> List[RegistryHiveEntry]:
    return _read_table(reader, "reg_hives", count, read_registry_hive)


def read_registry_keys(reader: ManifestReader, count: int) -> List[RegistryKeyEntry]:
    return _read_table(reader, "reg_keys", count, read_registry_key)


def read_links(reader: ManifestReader, count: int) -> List[LinkEntry]:
    return _read_table(reader, "links", count, read_link)


def _read_inline_text(reader: ManifestReader, field_name: str, pad_to: int) -> str:
    try:
        return reader.read_text(pad_to=pad_to)
    except ManifestDecodeError as exc:
        raise exc.with_context(field_name) from exc


def decode_manifest(source: bytes | BinaryIO) -> Manifest:
    """Decode a complete manifest from ``source``.

    Stages run in stream order and any failure aborts the whole decode; no
    partially populated manifest is ever returned.
    """

    if isinstance(source, (bytes, bytearray, memoryview)):
        reader = ManifestReader.from_bytes(bytes(source))
    else:
        reader = ManifestReader(source)

    header = decode_header(reader)
    app_name = _read_inline_text(reader, "app_name", header.length_app_name)
    provider = _read_inline_text(reader, "provider", header.length_provider)
    unsupported = _read_inline_text(reader, "unsupported", header.length_unsupported)

    strings = read_shared_strings(reader, header.num_strings)
    directories = read_directories(reader, header.num_dirs, strings)
    files = read_files(reader, header.num_files, directories)
    reg_hives = read_registry_hives(reader, header.num_reg_hives)
    reg_keys = read_registry_keys(reader, header.num_reg_keys)
    links = read_links(reader, header.num_links)

    LOGGER.debug(
        "decoded manifest for %r (%d bytes consumed, header declares %d)",
        app_name,
        reader.position,
        header.file_length,
    )
    return Manifest(
        header=header,
        app_name=app_name,
        provider=provider,
        unsupported=unsupported,
        strings=strings,
        directories=directories,
        files=tuple(files),
        reg_hives=tuple(reg_hives),
        reg_keys=tuple(reg_keys),
        links=tuple(links),
        file_mapping=build_file_mapping(files),
    )


def load_manifest(path: Path | str) -> Manifest:
    """Decode a manifest stored on disk (an already extracted ``.000`` member)."""

    with open(Path(path), "rb") as source:
        return decode_manifest(source)


__all__ = [
    "ARCHITECTURES",
    "DirectoryEntry",
    "FileEntry",
    "HEADER_SIZE",
    "Header",
    "LinkEntry",
    "MAGIC",
    "Manifest",
    "RegistryHiveEntry",
    "RegistryKeyEntry",
    "build_file_mapping",
    "decode_header",
    "decode_manifest",
    "format_extension_key",
    "join_file_path",
    "load_manifest",
    "read_directories",
    "read_directory_entry",
    "read_file_entry",
    "read_files",
    "read_link",
    "read_links",
    "read_registry_hive",
    "read_registry_hives",
    "read_registry_key",
    "read_registry_keys",
    "read_shared_strings",
    "resolve_spec_path",
]
