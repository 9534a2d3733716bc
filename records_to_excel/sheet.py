"""
Row materialization.

:class:`SheetBuilder` fills one openpyxl worksheet: column widths and the
frozen header pane first (a write-only worksheet emits them before the first
row), then the header row, then one row per record in source order.
"""

import logging

from openpyxl.cell import WriteOnlyCell
from openpyxl.utils import get_column_letter

from .config import MAX_COLUMN_WIDTH

logger = logging.getLogger(__name__)

# Excel column widths are stored in 1/256 of a character width.
WIDTH_UNITS_PER_CHAR = 256


def clamp_width(width: int, max_width: int = MAX_COLUMN_WIDTH) -> int:
    return min(width, max_width)


def column_width_units(width: int, max_width: int = MAX_COLUMN_WIDTH) -> int:
    """Clamped *width* in the format's internal units (300 -> 65280)."""
    return clamp_width(width, max_width) * WIDTH_UNITS_PER_CHAR


class SheetBuilder:
    """Writes a header row and one row per record into a worksheet."""

    def __init__(self, formatter, max_width: int = MAX_COLUMN_WIDTH):
        self.formatter = formatter
        self.max_width = max_width

    def build(self, sheet, columns, data_source) -> int:
        """Fill *sheet* and return the number of data rows written.

        Errors raised by an extractor or while rendering a cell are not
        caught; they abort the export.
        """
        for ci, column in enumerate(columns, 1):
            sheet.column_dimensions[get_column_letter(ci)].width = \
                clamp_width(column.width, self.max_width)
        sheet.freeze_panes = "A2"

        header = []
        for column in columns:
            cell = WriteOnlyCell(sheet)
            self.formatter.render_text(cell, column.header)
            header.append(cell)
        sheet.append(header)

        extractors = [c.extractor for c in columns]
        render = self.formatter.render
        count = 0
        for record in data_source:
            row = []
            for extract in extractors:
                cell = WriteOnlyCell(sheet)
                render(cell, extract(record))
                row.append(cell)
            sheet.append(row)
            count += 1

        logger.debug(f"Wrote {count} rows to sheet '{sheet.title}'")
        return count
