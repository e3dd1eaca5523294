"""Write a planned extraction to the host filesystem."""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterable, List, Protocol, Tuple

from .planner import PlanEntry

LOGGER = logging.getLogger(__name__)

_DRIVE_PREFIX = re.compile(r"[A-Za-z]:")


class EntrySource(Protocol):
    def open_entry(self, name: str) -> BinaryIO:  # pragma: no cover - protocol
        ...


@dataclass
class ExtractionReport:
    """Outcome of :func:`write_plan`."""

    written: List[Path] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def safe_relative_path(destination: str) -> Path:
    """Turn a manifest destination into a relative host path.

    Both ``/`` and ``\\`` separate segments; empty, ``.`` and ``..`` segments
    and a leading drive letter (``C:``) are dropped so the result stays under
    the output root.  Other segments containing ``:`` are kept as-is.
    """

    segments = [
        segment
        for segment in destination.replace("\\", "/").split("/")
        if segment not in ("", ".", "..")
    ]
    if segments and _DRIVE_PREFIX.fullmatch(segments[0]):
        del segments[0]
    if not segments:
        raise ValueError(f"destination {destination!r} has no usable path segments")
    return Path(*PurePosixPath(*segments).parts)


def write_entry(source: EntrySource, entry: PlanEntry, output_dir: Path) -> Path:
    """Write one planned entry and apply its timestamp."""

    target = output_dir / safe_relative_path(entry.destination)
    target.parent.mkdir(parents=True, exist_ok=True)
    with source.open_entry(entry.source) as stream, open(target, "wb") as sink:
        shutil.copyfileobj(stream, sink)

    try:
        mtime = entry.timestamp.timestamp()
        os.utime(target, (mtime, mtime))
    except (OSError, OverflowError, ValueError) as exc:
        LOGGER.warning("could not set timestamp on %s: %s", target, exc)
    return target


def write_plan(
    source: EntrySource, plan: Iterable[PlanEntry], output_dir: Path
) -> ExtractionReport:
    """Write every entry in ``plan`` under ``output_dir``.

    A failing entry is logged and recorded; the remaining entries are still
    written.
    """

    report = ExtractionReport()
    for entry in plan:
        try:
            target = write_entry(source, entry, output_dir)
        except (OSError, ValueError) as exc:
            # CabinetFormatError is a ValueError and covers unsupported folders
            LOGGER.error("failed to extract %s -> %s: %s", entry.source, entry.destination, exc)
            report.failed.append((entry.source, str(exc)))
            continue
        LOGGER.info("%s -> %s", entry.source, target)
        report.written.append(target)
    return report


__all__ = [
    "EntrySource",
    "ExtractionReport",
    "safe_relative_path",
    "write_entry",
    "write_plan",
]
