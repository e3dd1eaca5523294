"""Extraction planning: map every cabinet member onto its install destination."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Tuple

from .cabinet import CabinetArchive, CabinetEntry, CompressionMethod
from .errors import ManifestNotFoundError
from .manifest import Manifest, decode_manifest
from .placeholders import DEFAULT_PLACEHOLDERS, PlaceholderTable

LOGGER = logging.getLogger(__name__)

MANIFEST_EXTENSION = "000"
STUB_EXTENSION = "999"


@dataclass(frozen=True)
class FallbackNames:
    """Destinations for reserved extensions the manifest does not list."""

    manifest: str = "manifest.000"
    stub: str = "setup.dll"

    def lookup(self, extension: str) -> Optional[str]:
        if extension == MANIFEST_EXTENSION:
            return self.manifest
        if extension == STUB_EXTENSION:
            return self.stub
        return None


DEFAULT_FALLBACKS = FallbackNames()


@dataclass(frozen=True)
class PlanEntry:
    """A single cabinet member and where it should be written."""

    source: str
    compression: CompressionMethod
    timestamp: datetime
    size: int
    raw_destination: str
    destination: str


def entry_extension(name: str) -> str:
    """Return the literal stored extension of ``name`` (empty when there is none)."""

    _, dot, suffix = name.rpartition(".")
    return suffix if dot else ""


def find_manifest_entry(entries: Iterable[CabinetEntry]) -> CabinetEntry:
    """Return the first member tagged ``.000``."""

    for entry in entries:
        if entry_extension(entry.name) == MANIFEST_EXTENSION:
            return entry
    raise ManifestNotFoundError("cabinet has no .000 manifest member")


def read_cabinet_manifest(archive: CabinetArchive) -> Tuple[CabinetEntry, Manifest]:
    """Locate, inflate and decode the manifest member of ``archive``."""

    entry = find_manifest_entry(archive.iter_entries())
    LOGGER.info("decoding manifest member %s (%d bytes)", entry.name, entry.size)
    with archive.open_entry(entry.name) as stream:
        return entry, decode_manifest(stream)


def resolve_destination(
    entry_name: str,
    file_mapping: Mapping[str, str],
    fallbacks: FallbackNames = DEFAULT_FALLBACKS,
) -> str:
    """Pick the unexpanded destination for ``entry_name``.

    The manifest's redirect map wins, then the reserved-extension fallbacks,
    then the stored name itself.
    """

    extension = entry_extension(entry_name)
    redirected = file_mapping.get(extension)
    if redirected is not None:
        return redirected
    fallback = fallbacks.lookup(extension)
    if fallback is not None:
        return fallback
    return entry_name


def build_extraction_plan(
    entries: Iterable[CabinetEntry],
    manifest: Manifest,
    placeholders: PlaceholderTable = DEFAULT_PLACEHOLDERS,
    *,
    fallbacks: FallbackNames = DEFAULT_FALLBACKS,
    manifest_entry: CabinetEntry | None = None,
    now: datetime | None = None,
) -> List[PlanEntry]:
    """Plan every member except the manifest itself.

    ``now`` is captured once and stands in for members without a stored
    timestamp.  No I/O happens here.
    """

    entry_list = list(entries)
    if manifest_entry is None:
        manifest_entry = find_manifest_entry(entry_list)
    fallback_time = now if now is not None else datetime.now()

    plan: List[PlanEntry] = []
    for entry in entry_list:
        if entry.name == manifest_entry.name:
            continue
        raw_destination = resolve_destination(entry.name, manifest.file_mapping, fallbacks)
        destination = placeholders.expand(raw_destination)
        if raw_destination == entry.name:
            LOGGER.debug("%s has no manifest mapping; keeping stored name", entry.name)
        plan.append(
            PlanEntry(
                source=entry.name,
                compression=entry.compression,
                timestamp=entry.timestamp if entry.timestamp is not None else fallback_time,
                size=entry.size,
                raw_destination=raw_destination,
                destination=destination,
            )
        )
    return plan


__all__ = [
    "DEFAULT_FALLBACKS",
    "FallbackNames",
    "MANIFEST_EXTENSION",
    "PlanEntry",
    "STUB_EXTENSION",
    "build_extraction_plan",
    "entry_extension",
    "find_manifest_entry",
    "read_cabinet_manifest",
    "resolve_destination",
]
