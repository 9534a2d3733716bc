#!/usr/bin/env python
"""
Records-to-Excel exporter – CLI entry point.

Usage:
    python -m records_to_excel.main <records.json> --record-type pkg.module:Class
        [--field path[=label] ...] [--config export.yaml] [--output out.xlsx]

``records.json`` holds a JSON array of objects; a ``.jsonl`` file holds one
object per line.  Each object is validated into an instance of the record
type with pydantic; plain classes are called as ``Class(**obj)``.
Without ``--field`` the columns are discovered from the record type.
"""

import argparse
import importlib
import json
import logging
import os
import sys

from pydantic import TypeAdapter

from .config import load_config, setup_logging
from .errors import ExportError
from .exporter import Exporter
from .fields import is_pydantic_model, is_typed_record

logger = logging.getLogger(__name__)


def import_record_type(spec: str):
    """Import ``package.module:ClassName``."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Record type must look like 'module:Class', got '{spec}'")
    obj = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def parse_field(text: str):
    """``path=label`` -> (path, label); a bare path keeps the path as label."""
    path, sep, label = text.partition("=")
    return path.strip(), (label.strip() if sep else None)


def read_objects(path: str):
    """Yield the JSON objects stored in *path*."""
    with open(path, "r", encoding="utf-8") as f:
        if path.endswith(".jsonl"):
            for line in f:
                if line.strip():
                    yield json.loads(line)
        else:
            data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"{path} must contain a JSON array of objects")
            yield from data


def build_records(record_type, path: str):
    """Return a restartable supplier of typed records read from *path*.

    Pydantic models, dataclasses, NamedTuples and TypedDicts are validated by
    pydantic, so ISO date strings become dates and nested objects become
    nested records.  Other classes are called with the object's keys.
    """
    if is_pydantic_model(record_type):
        make = record_type.model_validate
    elif is_typed_record(record_type):
        make = TypeAdapter(record_type).validate_python
    else:
        def make(obj):
            return record_type(**obj)

    def supplier():
        return (make(obj) for obj in read_objects(path))
    return supplier


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Export JSON records to an Excel workbook"
    )
    parser.add_argument(
        "records",
        help="Path to a .json array or .jsonl file of records",
    )
    parser.add_argument(
        "--record-type", "-t", required=True,
        help="Record class as module:Class",
    )
    parser.add_argument(
        "--field", "-f", action="append", default=[],
        help="Column as dotted.path[=Label]; repeat for more columns",
    )
    parser.add_argument(
        "--config", "-c", default=None,
        help="Path to config YAML file",
    )
    parser.add_argument(
        "--output", "-o", default=None,
        help="Output .xlsx path (default: <records>.xlsx)",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(args.log_level or config.log_level)

    if not os.path.exists(args.records):
        logger.error(f"Records file not found: {args.records}")
        return 1

    output = args.output or os.path.splitext(args.records)[0] + ".xlsx"

    try:
        record_type = import_record_type(args.record_type)
        exporter = (Exporter.of(record_type, config=config)
                    .add_fields(parse_field(f) for f in args.field)
                    .with_data_source(build_records(record_type, args.records)))
        exporter.export_to(output)
    except (ExportError, ImportError, AttributeError, TypeError, ValueError) as exc:
        logger.error(f"Export failed: {exc}")
        return 1

    logger.info(f"Generated workbook: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
