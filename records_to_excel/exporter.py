"""
Exporter: the public builder.

Usage::

    data = (Exporter.of(Order)
            .add_field("number", "Order #")
            .add_field("customer.address.city", "City")
            .add_column("Total", lambda o: o.net + o.tax, width=12)
            .with_data_source(load_orders)
            .export())

Every builder method returns a new :class:`Exporter`; nothing is mutated.
Each ``export()`` / ``export_to()`` call runs one export session with its
own write-only workbook and styles, and releases the workbook's temporary
files whether the export succeeds or fails.
"""

import dataclasses
import io
import logging
import os
import zipfile
from dataclasses import dataclass
from typing import Any, Callable, Optional

from openpyxl import Workbook

from .cells import CellFormatter, CellStyles
from .columns import Column, ColumnSet, ExportField
from .config import ExportConfig
from .discovery import discover_fields
from .errors import WriteFailure
from .fields import FieldRegistry, default_registry, type_name
from .paths import resolve_path
from .sheet import SheetBuilder
from .source import EMPTY, DataSource, frame_columns, frame_source

logger = logging.getLogger(__name__)


def dispose_workbook(workbook):
    """Close and delete the temporary files behind write-only worksheets.

    Runs in a ``finally`` block, so a failure here is logged instead of
    replacing the error that ended the export.
    """
    for ws in workbook.worksheets:
        try:
            rows = getattr(ws, "_rows", None)
            if rows is not None:
                rows.close()
            writer = getattr(ws, "_writer", None)
            if writer is None:
                continue
            writer.close()
            if os.path.exists(writer.out):
                writer.cleanup()
        except Exception as exc:
            logger.warning(f"Could not release temporary files of sheet "
                           f"'{ws.title}': {exc}")


@dataclass(frozen=True)
class Exporter:
    record_type: Any
    columns: ColumnSet = ColumnSet()
    data_source: DataSource = EMPTY
    config: ExportConfig = ExportConfig()
    registry: FieldRegistry = default_registry
    is_leaf: Optional[Callable[[Any], bool]] = None

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------

    @classmethod
    def of(cls, record_type, config: Optional[ExportConfig] = None,
           registry: Optional[FieldRegistry] = None) -> "Exporter":
        return cls(record_type,
                   config=config or ExportConfig(),
                   registry=registry or default_registry)

    @classmethod
    def from_frame(cls, df, config: Optional[ExportConfig] = None) -> "Exporter":
        """Exporter writing every column and row of a ``pandas.DataFrame``."""
        config = config or ExportConfig()
        return cls(dict,
                   columns=frame_columns(df, config.default_width),
                   data_source=frame_source(df),
                   config=config)

    def add_column(self, header: Optional[str], extractor: Callable,
                   width: Optional[int] = None) -> "Exporter":
        if width is None:
            width = self.config.default_width
        column = Column(header, extractor, width)
        return dataclasses.replace(self, columns=self.columns.add(column))

    def add_field(self, path: str, label: Optional[str] = None,
                  width: Optional[int] = None) -> "Exporter":
        """Add a column reading the dotted *path*, headed by *label*.

        The path is resolved immediately, so an unknown field raises
        :class:`~records_to_excel.errors.UnknownFieldError` here rather than
        during the export.
        """
        extractor = resolve_path(self.record_type, path, self.registry)
        return self.add_column(label if label is not None else path,
                               extractor, width)

    def add_fields(self, fields) -> "Exporter":
        """Add one column per ``ExportField`` / ``(path, label)`` / path."""
        exporter = self
        for field in fields:
            if isinstance(field, str):
                field = ExportField(field)
            name, caption = field
            exporter = exporter.add_field(name, caption)
        return exporter

    def with_data_source(self, source) -> "Exporter":
        return dataclasses.replace(self, data_source=DataSource.of(source))

    def with_config(self, config: ExportConfig) -> "Exporter":
        return dataclasses.replace(self, config=config)

    def with_leaf_predicate(self, is_leaf: Callable[[Any], bool]) -> "Exporter":
        """Decide which declared types discovery treats as single columns."""
        return dataclasses.replace(self, is_leaf=is_leaf)

    def column_set(self) -> ColumnSet:
        """Registered columns, or discovered ones when none were registered."""
        if self.columns:
            return self.columns
        fields = discover_fields(self.record_type, self.registry, self.is_leaf)
        return self.add_fields(fields).columns

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export(self) -> bytes:
        """Export to an in-memory ``.xlsx`` document."""
        buffer = io.BytesIO()
        self._write(buffer)
        return buffer.getvalue()

    def export_to(self, sink):
        """Export to a file path or a writable binary stream.

        A stream is flushed but left open for the caller.
        """
        if isinstance(sink, (str, os.PathLike)):
            try:
                out = open(sink, "wb")
            except OSError as exc:
                raise WriteFailure(f"Cannot open {sink} for writing: {exc}") from exc
            with out:
                self._write(out)
        else:
            self._write(sink)

    def _write(self, out):
        columns = self.column_set()
        config = self.config
        logger.info(f"Exporting {type_name(self.record_type)} with "
                    f"{len(columns)} columns")

        workbook = Workbook(write_only=True)
        try:
            sheet = workbook.create_sheet(config.sheet_title)
            styles = CellStyles.register(workbook, config)
            formatter = CellFormatter(styles, config.true_text, config.false_text)
            builder = SheetBuilder(formatter, config.max_width)
            rows = builder.build(sheet, columns, self.data_source.records())
            try:
                workbook.save(out)
                if hasattr(out, "flush"):
                    out.flush()
            except (OSError, zipfile.LargeZipFile) as exc:
                raise WriteFailure(f"Cannot write workbook: {exc}") from exc
        finally:
            dispose_workbook(workbook)

        logger.info(f"Exported {rows} rows x {len(columns)} columns")
        return rows
