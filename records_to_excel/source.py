"""
Record sources.

A :class:`DataSource` hands out the records of one export.  It wraps either
a zero-argument callable returning an iterable (called again for every
export) or an iterable.  Iterators and generators can only be consumed once.

``frame_source`` / ``frame_columns`` adapt a ``pandas.DataFrame`` so that
each row becomes a plain ``dict`` and each frame column an export column.
"""

import logging
from collections.abc import Iterable, Iterator

import pandas as pd

from .columns import Column, ColumnSet
from .config import DEFAULT_COLUMN_WIDTH
from .errors import DataSourceExhaustedError

logger = logging.getLogger(__name__)


class DataSource:
    """Supplies the records of an export."""

    def __init__(self, provider=None):
        if provider is not None and not callable(provider) \
                and not isinstance(provider, Iterable):
            raise TypeError(
                f"Data source must be callable or iterable, "
                f"got {type(provider).__name__}")
        self._provider = provider
        self._consumed = False

    @classmethod
    def of(cls, source) -> "DataSource":
        """Wrap *source* unless it already is a :class:`DataSource`."""
        if isinstance(source, DataSource):
            return source
        if isinstance(source, pd.DataFrame):
            return frame_source(source)
        return cls(source)

    @property
    def single_pass(self) -> bool:
        return isinstance(self._provider, Iterator)

    def records(self) -> Iterator:
        """Return a fresh iterator over the records."""
        provider = self._provider
        if provider is None:
            return iter(())
        if callable(provider) and not isinstance(provider, Iterable):
            return iter(provider())
        if isinstance(provider, Iterator):
            if self._consumed:
                raise DataSourceExhaustedError(
                    "Single-pass data source has already been consumed")
            self._consumed = True
        return iter(provider)

    def __iter__(self):
        return self.records()


EMPTY = DataSource()


# ---------------------------------------------------------------------------
# pandas adapters
# ---------------------------------------------------------------------------

def _clean(value):
    """pandas missing markers (NaN, NaT, NA) become ``None``."""
    try:
        return None if pd.isna(value) else value
    except (TypeError, ValueError):
        # list-like cell values are never missing markers
        return value


def frame_records(df: pd.DataFrame) -> Iterator[dict]:
    """Yield each row of *df* as a dict keyed by column label."""
    columns = list(df.columns)
    for row in df.itertuples(index=False, name=None):
        yield {col: _clean(val) for col, val in zip(columns, row)}


def frame_source(df: pd.DataFrame) -> DataSource:
    """Restartable data source over the rows of *df*."""
    return DataSource(lambda: frame_records(df))


def _item_getter(key):
    def getter(row):
        return row.get(key)
    return getter


def frame_columns(df: pd.DataFrame, width: int = DEFAULT_COLUMN_WIDTH) -> ColumnSet:
    """One column per frame column, headed by its label."""
    return ColumnSet(
        Column(str(col), _item_getter(col), width) for col in df.columns
    )
