"""Column definitions."""

from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional

from .config import DEFAULT_COLUMN_WIDTH


class ExportField(NamedTuple):
    """A dotted field path and the caption shown in its header."""
    name: str
    caption: Optional[str] = None


@dataclass(frozen=True)
class Column:
    """One output column; a ``None`` header is stored as ``""``."""
    header: Optional[str]
    extractor: Callable[[Any], Any]
    width: int = DEFAULT_COLUMN_WIDTH

    def __post_init__(self):
        if self.header is None:
            object.__setattr__(self, "header", "")


class ColumnSet(tuple):
    """Ordered, immutable collection of :class:`Column`."""

    def __new__(cls, columns=()):
        return super().__new__(cls, columns)

    def add(self, column: Column) -> "ColumnSet":
        return ColumnSet(self + (column,))

    @property
    def headers(self) -> list:
        return [c.header for c in self]

    def __repr__(self):
        return f"ColumnSet({self.headers!r})"
