"""Load extractor configuration overlays from TOML files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import tomllib

from .placeholders import DEFAULT_PLACEHOLDERS, PlaceholderTable
from .planner import DEFAULT_FALLBACKS, FallbackNames


class ConfigError(ValueError):
    """Raised when an extractor configuration file fails validation."""


@dataclass(frozen=True)
class ExtractorConfig:
    """Settings shared by the ``list`` and ``extract`` commands."""

    placeholders: PlaceholderTable = field(default_factory=lambda: DEFAULT_PLACEHOLDERS)
    fallbacks: FallbackNames = DEFAULT_FALLBACKS
    output_dir: Optional[Path] = None

    @classmethod
    def default(cls) -> "ExtractorConfig":
        return cls()


def load_extractor_config(config_path: Path) -> ExtractorConfig:
    """Parse ``config_path`` and merge it over :meth:`ExtractorConfig.default`."""

    try:
        with config_path.open("rb") as stream:
            data = tomllib.load(stream)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc

    unknown = set(data) - {"placeholders", "fallbacks", "output"}
    if unknown:
        raise ConfigError(f"unknown configuration section(s): {', '.join(sorted(unknown))}")

    defaults = ExtractorConfig.default()
    placeholders = defaults.placeholders.merged(
        _parse_string_table(data.get("placeholders", {}), "placeholders")
    )
    fallbacks = _parse_fallbacks(data.get("fallbacks", {}), defaults.fallbacks)
    output_dir = _parse_output_dir(data.get("output", {}), base=config_path.parent)
    return ExtractorConfig(
        placeholders=placeholders, fallbacks=fallbacks, output_dir=output_dir
    )


def _parse_string_table(raw: Any, section: str) -> Dict[str, str]:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"[{section}] must be a table")
    parsed: Dict[str, str] = {}
    for key, value in raw.items():
        if not isinstance(value, str):
            raise ConfigError(
                f"[{section}] value for {key!r} must be a string, received {type(value).__name__}"
            )
        parsed[key] = value
    return parsed


def _parse_fallbacks(raw: Any, defaults: FallbackNames) -> FallbackNames:
    values = _parse_string_table(raw, "fallbacks")
    unknown = set(values) - {"manifest", "stub"}
    if unknown:
        raise ConfigError(f"unknown [fallbacks] key(s): {', '.join(sorted(unknown))}")
    for key, value in values.items():
        if not value.strip():
            raise ConfigError(f"[fallbacks] {key} must not be empty")
    return FallbackNames(
        manifest=values.get("manifest", defaults.manifest),
        stub=values.get("stub", defaults.stub),
    )


def _parse_output_dir(raw: Any, *, base: Path) -> Optional[Path]:
    values = _parse_string_table(raw, "output")
    directory = values.get("directory")
    if directory is None:
        return None
    path = Path(directory).expanduser()
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


__all__ = ["ConfigError", "ExtractorConfig", "load_extractor_config"]
