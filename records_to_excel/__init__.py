"""Records-to-Excel exporter.

Turns a stream of typed records into a single-sheet ``.xlsx`` workbook:

  * **Columns** are registered explicitly (a header plus any callable, or a
    dotted field path such as ``customer.address.city``) or discovered from
    the record type's nested fields.
  * **Cells** are typed from the extracted values: dates and date-times get
    date formats, numbers stay numeric, booleans become configurable
    yes/no words, ``None`` stays blank, everything else is text.
  * **Rows** are streamed through openpyxl's write-only worksheet, so memory
    does not grow with the number of records.
"""

from .cells import CellFormatter, CellKind, CellStyles, classify
from .columns import Column, ColumnSet, ExportField
from .config import ExportConfig, load_config
from .discovery import discover, discover_fields
from .errors import (
    CyclicStructureError,
    DataSourceExhaustedError,
    ExportError,
    FieldAccessError,
    UnknownFieldError,
    WriteFailure,
)
from .exporter import Exporter
from .fields import FieldRegistry, FieldSpec, default_registry
from .paths import PropertyPath, resolve_path
from .sheet import SheetBuilder, column_width_units
from .source import DataSource, frame_columns, frame_source

__all__ = [
    "CellFormatter",
    "CellKind",
    "CellStyles",
    "classify",
    "Column",
    "ColumnSet",
    "ExportField",
    "ExportConfig",
    "load_config",
    "discover",
    "discover_fields",
    "CyclicStructureError",
    "DataSourceExhaustedError",
    "ExportError",
    "FieldAccessError",
    "UnknownFieldError",
    "WriteFailure",
    "Exporter",
    "FieldRegistry",
    "FieldSpec",
    "default_registry",
    "PropertyPath",
    "resolve_path",
    "SheetBuilder",
    "column_width_units",
    "DataSource",
    "frame_columns",
    "frame_source",
]
