from __future__ import annotations

import pytest

from ceinstall.placeholders import DEFAULT_PLACEHOLDERS, PlaceholderTable, expand_placeholders


def test_expand_replaces_token_prefix() -> None:
    assert DEFAULT_PLACEHOLDERS.expand("%CE2%\\Start") == "Windows\\Start"


def test_expand_replaces_every_occurrence() -> None:
    table = PlaceholderTable({"%CE2%": "Windows"})

    assert table.expand("%CE2%\\a\\%CE2%") == "Windows\\a\\Windows"


@pytest.mark.parametrize("path", ["", "App/run.exe", "100%", "%CE%\\x", "%ce2%"])
def test_expand_leaves_unknown_paths_untouched(path: str) -> None:
    assert DEFAULT_PLACEHOLDERS.expand(path) == path
    assert DEFAULT_PLACEHOLDERS.expand(DEFAULT_PLACEHOLDERS.expand(path)) == path


def test_single_digit_token_does_not_match_two_digit_token() -> None:
    assert DEFAULT_PLACEHOLDERS.expand("%CE1%|%CE11%") == (
        "Program Files|Windows\\Start Menu\\Programs"
    )


def test_default_table_covers_seventeen_tokens() -> None:
    assert sorted(DEFAULT_PLACEHOLDERS.tokens, key=lambda t: int(t[3:-1])) == [
        f"%CE{index}%" for index in range(1, 18)
    ]


def test_merged_overrides_without_mutating_original() -> None:
    table = DEFAULT_PLACEHOLDERS.merged({"%CE1%": "Apps", "%SD%": "Storage Card"})

    assert table.expand("%CE1%\\x") == "Apps\\x"
    assert table.expand("%SD%") == "Storage Card"
    assert DEFAULT_PLACEHOLDERS.expand("%CE1%") == "Program Files"


def test_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        DEFAULT_PLACEHOLDERS.tokens["%CE1%"] = "nope"  # type: ignore[index]


def test_expand_placeholders_uses_default_table() -> None:
    assert expand_placeholders("%CE5%\\notes.txt") == "My Documents\\notes.txt"
