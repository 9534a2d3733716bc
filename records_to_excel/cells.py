"""
Cell formatting.

Every extracted value is first classified into a closed set of
:class:`CellKind` tags, then written into an openpyxl cell:

============  =====================  ==================
Kind          Written as             Style
============  =====================  ==================
BLANK         nothing                none
DATE          date serial (number)   date
DATETIME      date serial (number)   date-time
NUMBER        number                 default
BOOLEAN       configured yes/no text default
TEXT          ``str(value)``         default
============  =====================  ==================

Unknown value types are never an error; they fall back to TEXT.
"""

import enum
import math
import numbers
import time
from datetime import date, datetime
from typing import Any, NamedTuple

import numpy as np
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, NamedStyle


class CellKind(enum.Enum):
    BLANK = "blank"
    DATE = "date"
    DATETIME = "datetime"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"


class CellValue(NamedTuple):
    kind: CellKind
    payload: Any = None


_BLANK = CellValue(CellKind.BLANK)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _wall_clock(value: datetime) -> datetime:
    """Naive plain ``datetime`` with the same local fields (zone dropped)."""
    return datetime(value.year, value.month, value.day, value.hour,
                    value.minute, value.second, value.microsecond)


def _from_instant(value: np.datetime64) -> datetime:
    """Convert a numpy instant to the host's local wall-clock time."""
    micros = int(value.astype("datetime64[us]").astype("int64"))
    seconds, micro = divmod(micros, 1_000_000)
    return datetime.fromtimestamp(seconds).replace(microsecond=micro)


def parse_number(text: str):
    """Parse the canonical text of a number; ``None`` if not a finite real."""
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def classify(value) -> CellValue:
    """Tag *value* with the kind of cell it becomes."""
    if value is None:
        return _BLANK
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return _BLANK
        return CellValue(CellKind.DATETIME, _from_instant(value))
    if isinstance(value, datetime):
        if value != value:  # pandas.NaT
            return _BLANK
        return CellValue(CellKind.DATETIME, _wall_clock(value))
    if isinstance(value, date):
        return CellValue(CellKind.DATE, date(value.year, value.month, value.day))
    if isinstance(value, time.struct_time):
        return CellValue(CellKind.DATETIME, datetime(*value[:6]))
    # bool is an int subclass, so it must be tested before numbers
    if isinstance(value, (bool, np.bool_)):
        return CellValue(CellKind.BOOLEAN, bool(value))
    if isinstance(value, numbers.Number):
        number = parse_number(str(value))
        if number is None and isinstance(value, numbers.Real):
            number = parse_number(repr(float(value)))
        if number is not None:
            return CellValue(CellKind.NUMBER, number)
    return CellValue(CellKind.TEXT, str(value))


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------

class CellStyles(NamedTuple):
    """The three named styles shared by every cell of an export session."""
    default: NamedStyle
    date: NamedStyle
    datetime: NamedStyle

    @classmethod
    def register(cls, workbook, config) -> "CellStyles":
        """Create the styles and register them on *workbook*."""
        def make(name, number_format="General"):
            style = NamedStyle(name=name, number_format=number_format,
                               alignment=Alignment(wrap_text=config.wrap_text))
            workbook.add_named_style(style)
            return style

        return cls(
            default=make("export_default"),
            date=make("export_date", config.date_format),
            datetime=make("export_datetime", config.datetime_format),
        )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class CellFormatter:
    """Writes classified values into openpyxl cells."""

    def __init__(self, styles: CellStyles, true_text: str = "yes",
                 false_text: str = "no"):
        self.styles = styles
        self.true_text = true_text
        self.false_text = false_text

    def render(self, cell, value):
        kind, payload = classify(value)
        if kind is CellKind.BLANK:
            return
        if kind is CellKind.DATE:
            cell.value = payload
            cell.style = self.styles.date
        elif kind is CellKind.DATETIME:
            cell.value = payload
            cell.style = self.styles.datetime
        elif kind is CellKind.NUMBER:
            cell.value = payload
            cell.style = self.styles.default
        elif kind is CellKind.BOOLEAN:
            self.render_text(cell, self.true_text if payload else self.false_text)
        elif kind is CellKind.TEXT:
            self.render_text(cell, payload)
        else:
            raise AssertionError(f"Unhandled cell kind {kind}")

    def render_text(self, cell, text: str):
        """Store *text* as a literal string cell in the default style."""
        cell.value = ILLEGAL_CHARACTERS_RE.sub("", text)
        # never a formula or an error code
        cell.data_type = "s"
        cell.style = self.styles.default
