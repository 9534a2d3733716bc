"""
Automatic column discovery.

When no columns are registered, the exporter walks the declared fields of
the record type depth-first and turns every *leaf* field into a column whose
header is its dotted path.

Only declared (static) types are followed.  A field declared as a base
class is expanded with the base class's fields even when records carry a
subclass with more of them.
"""

import logging
from typing import Callable, Iterator, Optional

from .columns import ExportField
from .errors import CyclicStructureError
from .fields import default_registry, type_name

logger = logging.getLogger(__name__)


def discover(record_type, prefix: str = "", registry=None,
             is_leaf: Optional[Callable] = None) -> Iterator[str]:
    """Yield the dotted path of every leaf field reachable from *record_type*.

    The result is a lazy, single-use generator; call ``discover`` again to
    walk the fields from the start.

    Parameters
    ----------
    record_type : type
        Type whose fields are enumerated.
    prefix : str
        Prepended to every emitted path.
    registry : FieldRegistry or None
        Field metadata source.  Defaults to the shared registry.
    is_leaf : callable or None
        ``is_leaf(declared_type) -> bool``.  Defaults to "the registry cannot
        describe it as a structure".

    Raises
    ------
    CyclicStructureError
        If a nested type is reached again while it is still being expanded.
    """
    registry = registry or default_registry
    if is_leaf is None:
        def is_leaf(tp):
            return not registry.is_structure(tp)
    return _walk(record_type, prefix, registry, is_leaf, (record_type,))


def _walk(record_type, prefix, registry, is_leaf, on_path):
    for spec in registry.describe(record_type) or ():
        if is_leaf(spec.type):
            yield prefix + spec.name
            continue
        if spec.type in on_path:
            chain = [type_name(t) for t in on_path] + [type_name(spec.type)]
            raise CyclicStructureError(chain)
        yield from _walk(spec.type, prefix + spec.name + ".", registry,
                         is_leaf, on_path + (spec.type,))


def discover_fields(record_type, registry=None, is_leaf=None) -> list:
    """Discovered paths as :class:`ExportField` entries labelled by path."""
    fields = [ExportField(path, path)
              for path in discover(record_type, registry=registry,
                                   is_leaf=is_leaf)]
    logger.debug(f"Discovered {len(fields)} columns on {type_name(record_type)}")
    return fields
