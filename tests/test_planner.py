from __future__ import annotations

from datetime import datetime

import pytest

from builders import ManifestSpec, build_cabinet, build_manifest, minimal_manifest_spec
from ceinstall.cabinet import CabinetArchive, CabinetEntry, CompressionMethod
from ceinstall.errors import ManifestNotFoundError
from ceinstall.manifest import decode_manifest
from ceinstall.placeholders import DEFAULT_PLACEHOLDERS, PlaceholderTable
from ceinstall.planner import (
    FallbackNames,
    build_extraction_plan,
    entry_extension,
    find_manifest_entry,
    read_cabinet_manifest,
    resolve_destination,
)

_NOW = datetime(2024, 1, 2, 3, 4, 6)
_STAMP = datetime(2003, 5, 17, 14, 32, 10)


def _entry(name: str, *, timestamp: datetime | None = None, size: int = 1) -> CabinetEntry:
    return CabinetEntry(
        name=name,
        size=size,
        folder_index=0,
        folder_offset=0,
        timestamp=timestamp,
        attributes=0x20,
        compression=CompressionMethod.MSZIP,
    )


@pytest.mark.parametrize(
    "name, extension",
    [("APP.001", "001"), ("a.b.999", "999"), ("README", ""), ("trailing.", "")],
)
def test_entry_extension(name: str, extension: str) -> None:
    assert entry_extension(name) == extension


def test_resolve_destination_prefers_manifest_mapping() -> None:
    mapping = {"001": "App/run.exe", "999": "App/override.dll"}

    assert resolve_destination("APP.001", mapping) == "App/run.exe"
    assert resolve_destination("APP.999", mapping) == "App/override.dll"


def test_resolve_destination_reserved_fallbacks() -> None:
    assert resolve_destination("APP.000", {}) == "manifest.000"
    assert resolve_destination("APP.999", {}) == "setup.dll"
    custom = FallbackNames(manifest="_setup.xml", stub="stub.dll")
    assert resolve_destination("APP.999", {}, custom) == "stub.dll"


def test_resolve_destination_falls_back_to_stored_name() -> None:
    assert resolve_destination("APP.042", {"001": "x"}) == "APP.042"
    assert resolve_destination("readme.txt", {}) == "readme.txt"


def test_find_manifest_entry_first_match_wins() -> None:
    entries = [_entry("A.001"), _entry("A.000"), _entry("B.000")]

    assert find_manifest_entry(entries).name == "A.000"


def test_find_manifest_entry_requires_a_match() -> None:
    with pytest.raises(ManifestNotFoundError):
        find_manifest_entry([_entry("A.001")])


def test_plan_skips_manifest_and_expands_placeholders() -> None:
    spec = ManifestSpec(
        app_name="Game",
        strings=[(1, "%CE1%"), (2, "\\Game")],
        directories=[(1, [1, 2])],
        files=[(1, 1, 1, 0, "game.exe", None)],
    )
    manifest = decode_manifest(build_manifest(spec))
    entries = [
        _entry("GAME.000"),
        _entry("GAME.001", timestamp=_STAMP, size=42),
        _entry("GAME.007"),
    ]

    plan = build_extraction_plan(entries, manifest, DEFAULT_PLACEHOLDERS, now=_NOW)

    assert [entry.source for entry in plan] == ["GAME.001", "GAME.007"]
    first, second = plan
    assert first.raw_destination == "%CE1%\\Game/game.exe"
    assert first.destination == "Program Files\\Game/game.exe"
    assert first.timestamp == _STAMP
    assert first.size == 42
    assert first.compression is CompressionMethod.MSZIP
    assert second.destination == "GAME.007"
    assert second.timestamp == _NOW


def test_plan_uses_single_now_for_all_missing_timestamps() -> None:
    manifest = decode_manifest(build_manifest(minimal_manifest_spec()))
    entries = [_entry("APP.000"), _entry("APP.002"), _entry("APP.003")]

    plan = build_extraction_plan(entries, manifest)

    assert plan[0].timestamp == plan[1].timestamp


def test_plan_honours_custom_placeholder_table() -> None:
    spec = ManifestSpec(
        strings=[(1, "%CE2%")],
        directories=[(1, [1])],
        files=[(1, 1, 5, 0, "x.ttf", None)],
    )
    manifest = decode_manifest(build_manifest(spec))
    table = PlaceholderTable({"%CE2%": "System"})

    plan = build_extraction_plan([_entry("F.000"), _entry("F.005")], manifest, table, now=_NOW)

    assert plan[0].destination == "System/x.ttf"


def test_end_to_end_three_entry_cabinet() -> None:
    cabinet = build_cabinet(
        [
            ("APP.000", build_manifest(minimal_manifest_spec()), _STAMP),
            ("APP.001", b"MZ binary", _STAMP),
            ("APP.999", b"stub", None),
        ]
    )
    archive = CabinetArchive(cabinet)

    manifest_entry, manifest = read_cabinet_manifest(archive)
    plan = build_extraction_plan(
        archive.iter_entries(), manifest, manifest_entry=manifest_entry, now=_NOW
    )

    assert manifest_entry.name == "APP.000"
    assert manifest.app_name == "App"
    assert [(entry.source, entry.destination) for entry in plan] == [
        ("APP.001", "App/run.exe"),
        ("APP.999", "setup.dll"),
    ]
    assert plan[0].timestamp == _STAMP
    assert plan[1].timestamp == _NOW
    assert plan[0].size == len(b"MZ binary")


def test_read_cabinet_manifest_without_manifest_member() -> None:
    archive = CabinetArchive(build_cabinet([("APP.001", b"x", None)]))

    with pytest.raises(ManifestNotFoundError):
        read_cabinet_manifest(archive)
