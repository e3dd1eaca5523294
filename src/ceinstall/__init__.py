"""Decode Windows CE installer manifests and plan cabinet extraction."""
from __future__ import annotations

from .cabinet import CabinetArchive, CabinetEntry, CompressionMethod
from .errors import (
    CabinetFormatError,
    MagicMismatchError,
    ManifestDecodeError,
    ManifestNotFoundError,
    TruncatedRecordError,
    UnsupportedCompressionError,
)
from .manifest import Manifest, decode_manifest, load_manifest
from .placeholders import DEFAULT_PLACEHOLDERS, PlaceholderTable
from .planner import PlanEntry, build_extraction_plan, read_cabinet_manifest

__all__ = [
    "CabinetArchive",
    "CabinetEntry",
    "CabinetFormatError",
    "CompressionMethod",
    "DEFAULT_PLACEHOLDERS",
    "MagicMismatchError",
    "Manifest",
    "ManifestDecodeError",
    "ManifestNotFoundError",
    "PlaceholderTable",
    "PlanEntry",
    "TruncatedRecordError",
    "UnsupportedCompressionError",
    "build_extraction_plan",
    "decode_manifest",
    "load_manifest",
    "read_cabinet_manifest",
]
