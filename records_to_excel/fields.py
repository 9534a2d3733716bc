"""
Field metadata for record types.

The exporter never inspects records at runtime to find out what they
contain.  Instead a :class:`FieldRegistry` maps each record *type* to an
ordered tuple of :class:`FieldSpec` (name, declared type, getter), built once
and cached.

Dataclasses, pydantic models, ``typing.NamedTuple`` and ``TypedDict``
classes are described automatically.  Anything else can be registered
explicitly::

    registry.register(Invoice, {"number": str, "total": Decimal})
    registry.register(Legacy, {"code": (str, lambda r: r.get_code())})
"""

import dataclasses
import logging
import operator
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """One declared field of a record type."""
    name: str
    type: Any
    getter: Callable[[Any], Any]


def type_name(tp) -> str:
    """Readable name of a type for error messages."""
    return getattr(tp, "__qualname__", None) or repr(tp)


def unwrap_type(tp):
    """Strip ``Optional[...]`` and ``Annotated[...]`` from a declared type.

    Unions of more than one real type are returned unchanged.
    """
    origin = typing.get_origin(tp)
    if origin is typing.Annotated:
        return unwrap_type(typing.get_args(tp)[0])
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return unwrap_type(args[0])
    return tp


def _key_getter(name):
    def getter(record):
        return record.get(name)
    return getter


def _type_hints(tp) -> dict:
    try:
        return typing.get_type_hints(tp)
    except (NameError, TypeError) as exc:
        # Unresolvable forward references: keep the raw annotations, which
        # then behave as leaves.
        logger.debug(f"Cannot resolve type hints of {type_name(tp)}: {exc}")
        return dict(getattr(tp, "__annotations__", {}))


def _is_subclass(tp, base) -> bool:
    try:
        return isinstance(tp, type) and issubclass(tp, base)
    except TypeError:
        # parameterized generics such as list[int]
        return False


def _is_named_tuple(tp) -> bool:
    return _is_subclass(tp, tuple) and hasattr(tp, "_fields")


def is_pydantic_model(tp) -> bool:
    return _is_subclass(tp, BaseModel)


def is_typed_record(tp) -> bool:
    """Dataclass, ``NamedTuple`` or ``TypedDict`` class."""
    return ((dataclasses.is_dataclass(tp) and isinstance(tp, type))
            or _is_named_tuple(tp) or typing.is_typeddict(tp))


def _describe_dataclass(tp):
    hints = _type_hints(tp)
    return tuple(
        FieldSpec(f.name, unwrap_type(hints.get(f.name, f.type)),
                  operator.attrgetter(f.name))
        for f in dataclasses.fields(tp)
    )


def _describe_pydantic(tp):
    return tuple(
        FieldSpec(name, unwrap_type(info.annotation), operator.attrgetter(name))
        for name, info in tp.model_fields.items()
    )


def _describe_named_tuple(tp):
    hints = _type_hints(tp)
    return tuple(
        FieldSpec(name, unwrap_type(hints.get(name, Any)),
                  operator.attrgetter(name))
        for name in tp._fields
    )


def _describe_typed_dict(tp):
    return tuple(
        FieldSpec(name, unwrap_type(hint), _key_getter(name))
        for name, hint in _type_hints(tp).items()
    )


class FieldRegistry:
    """Maps record types to their declared fields."""

    def __init__(self):
        self._explicit = {}
        self._cache = {}

    def register(self, record_type, fields):
        """Declare the fields of *record_type* explicitly.

        *fields* is either an iterable of :class:`FieldSpec` or a mapping of
        field name to a declared type or a ``(declared_type, getter)`` pair.
        A missing getter means plain attribute access.
        """
        if isinstance(fields, Mapping):
            specs = []
            for name, decl in fields.items():
                if isinstance(decl, tuple):
                    field_type, getter = decl
                else:
                    field_type, getter = decl, operator.attrgetter(name)
                specs.append(FieldSpec(name, unwrap_type(field_type), getter))
        else:
            specs = list(fields)
        self._explicit[record_type] = tuple(specs)
        self._cache.pop(record_type, None)
        return record_type

    def describe(self, record_type) -> Optional[tuple]:
        """Return the fields of *record_type*, or ``None`` for a non-structure."""
        tp = unwrap_type(record_type)
        if tp in self._explicit:
            return self._explicit[tp]
        if tp in self._cache:
            return self._cache[tp]

        if dataclasses.is_dataclass(tp) and isinstance(tp, type):
            specs = _describe_dataclass(tp)
        elif is_pydantic_model(tp):
            specs = _describe_pydantic(tp)
        elif _is_named_tuple(tp):
            specs = _describe_named_tuple(tp)
        elif typing.is_typeddict(tp):
            specs = _describe_typed_dict(tp)
        else:
            specs = None
        self._cache[tp] = specs
        return specs

    def is_structure(self, record_type) -> bool:
        return self.describe(record_type) is not None

    def field(self, record_type, name: str) -> Optional[FieldSpec]:
        """Look up one declared field by name."""
        for spec in self.describe(record_type) or ():
            if spec.name == name:
                return spec
        return None


default_registry = FieldRegistry()
