"""End-to-end tests for the Exporter builder."""

import glob
import io
import logging
import os
import re
import sys
import tempfile
import types
import zipfile
from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest
from openpyxl import load_workbook

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from records_to_excel import (
    CyclicStructureError,
    ExportConfig,
    ExportField,
    Exporter,
    FieldAccessError,
    UnknownFieldError,
    WriteFailure,
)
from records_to_excel.errors import DataSourceExhaustedError
from records_to_excel.exporter import dispose_workbook
from tests.sample_records import (
    Node,
    Order,
    Person,
    Product,
    Dimensions,
    sample_orders,
    sample_people,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sheet(data: bytes):
    wb = load_workbook(io.BytesIO(data))
    assert len(wb.worksheets) == 1
    return wb.worksheets[0]


def _rows(ws):
    return [[c.value for c in row] for row in ws.iter_rows()]


def _sheet_xml(data: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return archive.read("xl/worksheets/sheet1.xml").decode("utf-8")


def _cell_xml(xml: str, coord: str) -> str:
    m = re.search(rf'<c [^>]*r="{coord}"[^>]*(/>|>.*?</c>)', xml)
    assert m, f"cell {coord} not found"
    return m.group(0)


def _openpyxl_temp_files():
    return set(glob.glob(os.path.join(tempfile.gettempdir(), "openpyxl.*")))


# ---------------------------------------------------------------------------
# Discovered columns (the three-record example)
# ---------------------------------------------------------------------------

class TestDiscoveredExport:
    @pytest.fixture(scope="class")
    def data(self):
        return Exporter.of(Person).with_data_source(sample_people()).export()

    def test_header_and_rows(self, data):
        ws = _sheet(data)
        rows = _rows(ws)
        assert rows[0] == ["name", "age", "joined"]
        assert [r[0] for r in rows[1:]] == ["Ann", "Bob", "Cid"]
        assert len(rows) == 4

    def test_age_is_numeric(self, data):
        ws = _sheet(data)
        assert [ws.cell(row=r, column=2).value for r in (2, 3, 4)] == [34, 27, 45]
        assert all(ws.cell(row=r, column=2).data_type == "n" for r in (2, 3, 4))

    def test_joined_is_date_styled_serial(self, data):
        ws = _sheet(data)
        cell = ws["C4"]
        assert cell.number_format == "yyyy-mm-dd"
        assert cell.style == "export_date"
        assert cell.value.date() == date(2024, 3, 15)
        raw = _cell_xml(_sheet_xml(data), "C4")
        assert 't="n"' in raw
        assert "<v>45366</v>" in raw

    def test_header_frozen(self, data):
        assert _sheet(data).freeze_panes == "A2"

    def test_default_widths(self, data):
        ws = _sheet(data)
        assert [ws.column_dimensions[c].width for c in "ABC"] == [30, 30, 30]

    def test_sheet_title(self, data):
        assert _sheet(data).title == "Export"


# ---------------------------------------------------------------------------
# Registered columns
# ---------------------------------------------------------------------------

class TestRegisteredColumns:
    @pytest.fixture(scope="class")
    def exporter(self):
        return (Exporter.of(Order)
                .add_field("number", "Order #")
                .add_fields([ExportField("customer.address.city", "City"),
                             ("shipped", "Shipped")])
                .add_fields(["paid"])
                .add_column("Total", lambda o: o.total, width=300)
                .add_column(None, lambda o: len(o.tags), width=10)
                .with_data_source(sample_orders))

    @pytest.fixture(scope="class")
    def ws(self, exporter):
        return _sheet(exporter.export())

    def test_headers_in_registration_order(self, ws):
        assert _rows(ws)[0] == ["Order #", "City", "Shipped", "paid", "Total", None]

    def test_null_path_step_gives_blank(self, ws):
        assert ws["B2"].value == "Springfield"
        assert ws["B3"].value is None
        assert ws["B4"].value is None

    def test_datetime_cell(self, ws):
        assert ws["C2"].value == datetime(2024, 3, 16, 9, 30)
        assert ws["C2"].number_format == "yyyy-mm-dd hh:mm:ss"
        assert ws["C3"].value is None

    def test_boolean_words(self, ws):
        assert [ws.cell(row=r, column=4).value for r in (2, 3, 4)] == ["yes", "no", "no"]

    def test_decimal_numbers(self, ws):
        assert ws["E2"].value == 19.99
        assert ws["E4"].value == 5

    def test_widths(self, ws):
        assert ws.column_dimensions["E"].width == 255
        assert ws.column_dimensions["F"].width == 10

    def test_missing_header_stored_empty(self):
        exporter = Exporter.of(Order).add_column(None, lambda o: o.number)
        assert exporter.columns[0].header == ""
        assert exporter.column_set().headers == [""]

    def test_builder_is_immutable(self):
        base = Exporter.of(Order)
        extended = base.add_field("number")
        assert len(base.columns) == 0
        assert len(extended.columns) == 1
        assert extended.column_set().headers == ["number"]

    def test_supplier_allows_repeated_exports(self, exporter):
        assert _rows(_sheet(exporter.export())) == _rows(_sheet(exporter.export()))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfiguredExport:
    def test_boolean_words_and_title(self):
        config = ExportConfig(true_text="да", false_text="нет", sheet_title="Orders",
                              default_width=12)
        data = (Exporter.of(Order, config=config)
                .add_field("paid")
                .with_data_source(sample_orders())
                .export())
        ws = _sheet(data)
        assert ws.title == "Orders"
        assert [ws.cell(row=r, column=1).value for r in (2, 3, 4)] == ["да", "нет", "нет"]
        assert ws.column_dimensions["A"].width == 12

    def test_custom_date_format(self):
        config = ExportConfig(date_format="dd.mm.yyyy")
        data = (Exporter.of(Person).with_config(config)
                .with_data_source(sample_people()).export())
        assert _sheet(data)["C2"].number_format == "dd.mm.yyyy"

    def test_leaf_predicate(self):
        exporter = Exporter.of(Order).with_leaf_predicate(lambda tp: tp is not Order)
        assert "customer" in exporter.column_set().headers


# ---------------------------------------------------------------------------
# Frames and pydantic records
# ---------------------------------------------------------------------------

class TestOtherRecordKinds:
    def test_from_frame(self):
        df = pd.DataFrame({"city": ["Oslo", None, "Rome"],
                           "temp": [4.5, float("nan"), 12.0]})
        data = Exporter.from_frame(df).export()
        assert _rows(_sheet(data)) == [["city", "temp"], ["Oslo", 4.5],
                                       [None, None], ["Rome", 12]]
        # an all-missing record still gets its own (empty) row
        assert '<row r="3"' in _sheet_xml(data)

    def test_frame_as_data_source(self):
        df = pd.DataFrame({"name": ["Ann"], "age": [30], "joined": [pd.Timestamp("2024-03-15")]})
        exporter = (Exporter.of(dict)
                    .add_column("Name", lambda r: r["name"])
                    .with_data_source(df))
        assert _rows(_sheet(exporter.export()))[1] == ["Ann"]

    def test_pydantic_records(self):
        products = [Product(sku="P1", size=Dimensions(width=1.0, height=2.0),
                            price=Decimal("9.90"))]
        ws = _sheet(Exporter.of(Product).with_data_source(products).export())
        assert _rows(ws) == [["sku", "size.width", "size.height", "price"],
                             ["P1", 1, 2, 9.9]]


# ---------------------------------------------------------------------------
# Output targets
# ---------------------------------------------------------------------------

class TestExportTo:
    def test_path(self, tmp_path):
        target = tmp_path / "people.xlsx"
        Exporter.of(Person).with_data_source(sample_people()).export_to(target)
        ws = load_workbook(target).worksheets[0]
        assert ws["A2"].value == "Ann"

    def test_stream_left_open(self):
        stream = io.BytesIO()
        Exporter.of(Person).with_data_source(sample_people()).export_to(stream)
        assert not stream.closed
        assert _sheet(stream.getvalue())["A4"].value == "Cid"

    def test_unwritable_path(self, tmp_path):
        target = tmp_path / "missing" / "out.xlsx"
        with pytest.raises(WriteFailure):
            Exporter.of(Person).export_to(target)

    def test_failing_stream(self):
        class Broken(io.RawIOBase):
            def writable(self):
                return True

            def write(self, b):
                raise OSError("disk full")

        with pytest.raises(WriteFailure) as info:
            Exporter.of(Person).with_data_source(sample_people()).export_to(Broken())
        assert isinstance(info.value.__cause__, OSError)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    def test_unknown_field_raised_at_registration(self):
        with pytest.raises(UnknownFieldError):
            Exporter.of(Order).add_field("customer.phone")

    def test_cycle_raised_before_writing(self):
        with pytest.raises(CyclicStructureError):
            Exporter.of(Node).with_data_source([Node("a")]).export()

    def test_field_access_error_aborts(self):
        class Unset:
            pass

        from records_to_excel.fields import FieldRegistry
        registry = FieldRegistry()
        registry.register(Unset, {"value": int})
        exporter = (Exporter.of(Unset, registry=registry)
                    .add_field("value")
                    .with_data_source([Unset()]))
        with pytest.raises(FieldAccessError):
            exporter.export()

    def test_single_pass_source_exported_once(self):
        exporter = Exporter.of(Person).with_data_source(p for p in sample_people())
        exporter.export()
        with pytest.raises(DataSourceExhaustedError):
            exporter.export()

    def test_temp_files_released_on_failure(self):
        def boom(record):
            raise RuntimeError("extractor failed")

        before = _openpyxl_temp_files()
        exporter = (Exporter.of(Person)
                    .add_field("name")
                    .add_column("bad", boom)
                    .with_data_source(sample_people()))
        with pytest.raises(RuntimeError):
            exporter.export()
        assert _openpyxl_temp_files() - before == set()

    def test_temp_files_released_on_success(self):
        before = _openpyxl_temp_files()
        Exporter.of(Person).with_data_source(sample_people()).export()
        assert _openpyxl_temp_files() - before == set()

    def test_cleanup_failure_keeps_original_error(self, monkeypatch, caplog):
        from openpyxl.worksheet._writer import WorksheetWriter

        cleanup = WorksheetWriter.cleanup

        def failing_cleanup(writer):
            cleanup(writer)
            raise OSError("temp file locked")

        def boom(record):
            raise RuntimeError("extractor failed")

        monkeypatch.setattr(WorksheetWriter, "cleanup", failing_cleanup)
        exporter = (Exporter.of(Person)
                    .add_column("bad", boom)
                    .with_data_source(sample_people()))
        with caplog.at_level(logging.WARNING, logger="records_to_excel.exporter"):
            with pytest.raises(RuntimeError, match="extractor failed"):
                exporter.export()
        assert "temp file locked" in caplog.text


def test_dispose_workbook_logs_and_continues(caplog):
    class Rows:
        def close(self):
            raise ValueError("generator already executing")

    closed = []
    broken = types.SimpleNamespace(title="Broken", _rows=Rows(), _writer=None)
    fine = types.SimpleNamespace(title="Fine", _rows=None, _writer=None)
    fine._rows = types.SimpleNamespace(close=lambda: closed.append("Fine"))
    workbook = types.SimpleNamespace(worksheets=[broken, fine])

    with caplog.at_level(logging.WARNING, logger="records_to_excel.exporter"):
        dispose_workbook(workbook)
    assert closed == ["Fine"]
    assert "Broken" in caplog.text
