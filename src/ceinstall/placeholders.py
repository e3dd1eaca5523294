"""Expansion of the ``%CEn%`` target-root tokens found in manifest paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

_DEFAULT_TOKENS: Tuple[Tuple[str, str], ...] = (
    ("%CE1%", "Program Files"),
    ("%CE2%", "Windows"),
    ("%CE3%", "Windows\\Desktop"),
    ("%CE4%", "Windows\\StartUp"),
    ("%CE5%", "My Documents"),
    ("%CE6%", "Program Files\\Accessories"),
    ("%CE7%", "Program Files\\Communication"),
    ("%CE8%", "Program Files\\Games"),
    ("%CE9%", "Program Files\\Pocket Outlook"),
    ("%CE10%", "Program Files\\Office"),
    ("%CE11%", "Windows\\Start Menu\\Programs"),
    ("%CE12%", "Windows\\Start Menu\\Programs\\Accessories"),
    ("%CE13%", "Windows\\Start Menu\\Programs\\Communications"),
    ("%CE14%", "Windows\\Start Menu\\Programs\\Games"),
    ("%CE15%", "Windows\\Fonts"),
    ("%CE16%", "Windows\\Recent"),
    ("%CE17%", "Windows\\Start Menu"),
)


@dataclass(frozen=True)
class PlaceholderTable:
    """Immutable token to path-segment table.

    Tokens are delimited by ``%`` on both sides so none is a substring of
    another; replacement order therefore never changes the result.
    """

    tokens: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tokens", MappingProxyType(dict(self.tokens)))

    def expand(self, path: str) -> str:
        """Replace every occurrence of every known token in ``path``."""

        for token, replacement in self.tokens.items():
            if token in path:
                path = path.replace(token, replacement)
        return path

    def merged(self, overrides: Mapping[str, str]) -> "PlaceholderTable":
        """Return a new table with ``overrides`` layered over these tokens."""

        combined: Dict[str, str] = dict(self.tokens)
        combined.update(overrides)
        return PlaceholderTable(combined)


DEFAULT_PLACEHOLDERS = PlaceholderTable(dict(_DEFAULT_TOKENS))


def expand_placeholders(path: str, table: PlaceholderTable = DEFAULT_PLACEHOLDERS) -> str:
    return table.expand(path)


__all__ = ["DEFAULT_PLACEHOLDERS", "PlaceholderTable", "expand_placeholders"]
