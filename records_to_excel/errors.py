"""
Exception types raised by the exporter.

Every failure surfaces as a subclass of :class:`ExportError`.  Nothing is
caught or retried inside the engine: the first error aborts the export.
"""


class ExportError(Exception):
    """Base class for all export failures."""


class UnknownFieldError(ExportError):
    """A dotted path names a field its owning type does not declare."""

    def __init__(self, type_name: str, field_name: str):
        self.type_name = type_name
        self.field_name = field_name
        super().__init__(
            f"Type '{type_name}' doesn't have declared field '{field_name}'"
        )


class CyclicStructureError(ExportError):
    """Automatic column discovery met a type already on its own path."""

    def __init__(self, chain):
        self.chain = tuple(chain)
        super().__init__(
            "Cyclic nested structure: " + " -> ".join(self.chain)
        )


class FieldAccessError(ExportError):
    """A resolved field could not be read from a record."""

    def __init__(self, type_name: str, field_name: str):
        self.type_name = type_name
        self.field_name = field_name
        super().__init__(
            f"Cannot read field '{field_name}' of '{type_name}'"
        )


class WriteFailure(ExportError):
    """The spreadsheet writer failed to serialize or flush the document."""


class DataSourceExhaustedError(ExportError):
    """A single-pass data source was iterated a second time."""
