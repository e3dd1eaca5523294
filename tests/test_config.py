from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from ceinstall.config import ConfigError, ExtractorConfig, load_extractor_config
from ceinstall.placeholders import DEFAULT_PLACEHOLDERS
from ceinstall.planner import DEFAULT_FALLBACKS


def write_config(tmp_path: Path, body: str) -> Path:
    config_path = tmp_path / "ceinstall.toml"
    config_path.write_text(textwrap.dedent(body), encoding="utf-8")
    return config_path


def test_default_config_uses_builtin_tables() -> None:
    config = ExtractorConfig.default()

    assert config.placeholders is DEFAULT_PLACEHOLDERS
    assert config.fallbacks == DEFAULT_FALLBACKS
    assert config.output_dir is None


def test_load_config_merges_overrides(tmp_path: Path) -> None:
    config_path = write_config(
        tmp_path,
        """
        [placeholders]
        "%CE1%" = "Apps"
        "%SD%" = "Storage Card"

        [fallbacks]
        stub = "installer.dll"

        [output]
        directory = "extracted"
        """,
    )

    config = load_extractor_config(config_path)

    assert config.placeholders.expand("%CE1%\\x") == "Apps\\x"
    assert config.placeholders.expand("%CE2%") == "Windows"
    assert config.placeholders.expand("%SD%") == "Storage Card"
    assert config.fallbacks.stub == "installer.dll"
    assert config.fallbacks.manifest == DEFAULT_FALLBACKS.manifest
    assert config.output_dir == (tmp_path / "extracted").resolve()


def test_empty_config_matches_defaults(tmp_path: Path) -> None:
    config = load_extractor_config(write_config(tmp_path, ""))

    assert dict(config.placeholders.tokens) == dict(DEFAULT_PLACEHOLDERS.tokens)
    assert config.fallbacks == DEFAULT_FALLBACKS


@pytest.mark.parametrize(
    "body, message",
    [
        ('[placeholders]\n"%CE1%" = 3\n', "must be a string"),
        ('[fallbacks]\nother = "x"\n', "unknown [fallbacks]"),
        ('[fallbacks]\nstub = "  "\n', "must not be empty"),
        ('[colours]\nx = "y"\n', "unknown configuration section"),
        ('placeholders = "flat"\n', "must be a table"),
        ("[placeholders\n", "ceinstall.toml"),
    ],
)
def test_invalid_configs_are_rejected(tmp_path: Path, body: str, message: str) -> None:
    with pytest.raises(ConfigError, match=message.replace("[", r"\[")):
        load_extractor_config(write_config(tmp_path, body))
