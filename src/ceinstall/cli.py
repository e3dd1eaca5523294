"""Command-line entry points for listing and extracting Windows CE installer cabinets."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Tuple

from .cabinet import CabinetArchive
from .config import ConfigError, ExtractorConfig, load_extractor_config
from .errors import CabinetFormatError, ManifestDecodeError, ManifestNotFoundError
from .manifest import Manifest
from .planner import PlanEntry, build_extraction_plan, read_cabinet_manifest
from .writer import safe_relative_path, write_plan

LOGGER = logging.getLogger(__name__)

CommandFunc = Callable[[Sequence[str] | None], int | None]

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("cabinet", type=Path, help="Path to the installer .cab file")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML overlay with placeholder, fallback and output settings",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=_LOG_LEVELS,
        help="Logging verbosity.",
    )


def _load_config(path: Path | None) -> ExtractorConfig:
    if path is None:
        return ExtractorConfig.default()
    if not path.is_file():
        raise SystemExit(f"configuration file not found: {path}")
    try:
        return load_extractor_config(path)
    except ConfigError as exc:
        raise SystemExit(f"invalid configuration: {exc}") from exc


def open_installer(
    cabinet_path: Path, config: ExtractorConfig
) -> Tuple[CabinetArchive, Manifest, List[PlanEntry]]:
    """Load ``cabinet_path``, decode its manifest and plan every member."""

    if not cabinet_path.is_file():
        raise SystemExit(f"cabinet not found: {cabinet_path}")
    try:
        archive = CabinetArchive.load(cabinet_path)
        manifest_entry, manifest = read_cabinet_manifest(archive)
    except ManifestNotFoundError as exc:
        raise SystemExit(f"{cabinet_path}: {exc}") from exc
    except (CabinetFormatError, ManifestDecodeError) as exc:
        raise SystemExit(f"{cabinet_path}: cannot decode installer: {exc}") from exc

    plan = build_extraction_plan(
        archive.iter_entries(),
        manifest,
        config.placeholders,
        fallbacks=config.fallbacks,
        manifest_entry=manifest_entry,
    )
    return archive, manifest, plan


def _plan_record(entry: PlanEntry) -> Dict[str, Any]:
    return {
        "source": entry.source,
        "destination": entry.destination,
        "raw_destination": entry.raw_destination,
        "size": entry.size,
        "compression": entry.compression.name,
        "timestamp": entry.timestamp.isoformat(),
    }


def parse_list_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ceinstall list",
        description="Show the application name and members of an installer cabinet.",
    )
    _common_arguments(parser)
    parser.add_argument(
        "--plan",
        action="store_true",
        help="Also print one 'source -> destination' line per member",
    )
    parser.add_argument(
        "--json", action="store_true", help="Emit the manifest summary as JSON"
    )
    return parser.parse_args(argv)


def list_main(argv: Sequence[str] | None = None) -> int:
    args = parse_list_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    config = _load_config(args.config)
    _, manifest, plan = open_installer(args.cabinet, config)

    if args.json:
        payload = {
            "app_name": manifest.app_name,
            "provider": manifest.provider,
            "architecture": manifest.header.architecture_name,
            "entries": len(plan),
            "plan": [_plan_record(entry) for entry in plan],
        }
        print(json.dumps(payload, ensure_ascii=False))
        return 0

    print(f"Application: {manifest.app_name}")
    if manifest.provider:
        print(f"Provider: {manifest.provider}")
    print(f"Entries: {len(plan)}")
    if args.plan:
        for entry in plan:
            print(f"{entry.source} -> {entry.destination}")
    return 0


def parse_extract_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ceinstall extract",
        description="Extract every member of an installer cabinet to its real path.",
    )
    _common_arguments(parser)
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output directory (defaults to the application name)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the planned destinations without writing anything",
    )
    return parser.parse_args(argv)


def extract_main(argv: Sequence[str] | None = None) -> int:
    args = parse_extract_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    config = _load_config(args.config)
    archive, manifest, plan = open_installer(args.cabinet, config)

    output_dir: Path | None = args.output or config.output_dir
    if output_dir is None:
        try:
            output_dir = safe_relative_path(manifest.app_name)
        except ValueError as exc:
            raise SystemExit(
                "application name is not usable as a directory; pass --output"
            ) from exc

    if args.dry_run:
        for entry in plan:
            print(f"{entry.source} -> {output_dir / safe_relative_path(entry.destination)}")
        return 0

    LOGGER.info("extracting %d member(s) of %s to %s", len(plan), args.cabinet, output_dir)
    report = write_plan(archive, plan, output_dir)
    for source, reason in report.failed:
        print(f"failed: {source}: {reason}", file=sys.stderr)
    print(f"Done extracting {manifest.app_name} ({len(report.written)} file(s) to {output_dir})")
    return 0 if report.ok else 1


COMMANDS: Dict[str, CommandFunc] = {
    "list": list_main,
    "extract": extract_main,
}


def _print_usage() -> None:
    print("Usage: ceinstall <command> [args...]")
    print("Available commands:")
    for name in sorted(COMMANDS):
        print(f"  {name}")


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] in {"-h", "--help", "help"}:
        _print_usage()
        return 0

    command = args[0]
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}")
        _print_usage()
        return 1

    result = handler(args[1:])
    return int(result) if isinstance(result, int) else 0


__all__ = ["COMMANDS", "extract_main", "list_main", "main", "open_installer"]


if __name__ == "__main__":  # pragma: no cover - exercised via python -m
    raise SystemExit(main())
