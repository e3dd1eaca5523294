"""Exception taxonomy shared by the manifest decoder and its collaborators."""

from __future__ import annotations


class ManifestDecodeError(ValueError):
    """Raised when an ``MSCE`` manifest cannot be decoded.

    ``table`` and ``index`` carry the nearest structural context known at the
    point of failure (for example ``("files", 3)``); either may be ``None``
    when the failure happened outside a counted table.
    """

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        index: int | None = None,
    ) -> None:
        self.table = table
        self.index = index
        super().__init__(message)

    def with_context(self, table: str, index: int | None = None) -> "ManifestDecodeError":
        """Return a copy of this error annotated with ``table`` and ``index``."""

        location = table if index is None else f"{table}[{index}]"
        return type(self)(f"{location}: {self}", table=table, index=index)


class TruncatedRecordError(ManifestDecodeError):
    """Raised when a read runs past the available bytes or a text field is unterminated."""


class MagicMismatchError(ManifestDecodeError):
    """Raised when the manifest header does not start with the ``MSCE`` tag."""


class ManifestNotFoundError(LookupError):
    """Raised when a cabinet carries no ``.000`` manifest member."""


class CabinetFormatError(ValueError):
    """Raised when a cabinet's directory structures are malformed."""


class UnsupportedCompressionError(CabinetFormatError):
    """Raised when an entry uses a compression method this reader cannot inflate."""


__all__ = [
    "CabinetFormatError",
    "MagicMismatchError",
    "ManifestDecodeError",
    "ManifestNotFoundError",
    "TruncatedRecordError",
    "UnsupportedCompressionError",
]
