"""
Dotted-path resolution.

``resolve_path(Order, "customer.address.city")`` checks every segment
against the declared fields of its owning type *once*, then returns a
:class:`PropertyPath` that walks those fields for each record.  A ``None``
anywhere along the way yields ``None`` (a blank cell) rather than an error.
"""

import logging

from .errors import FieldAccessError, UnknownFieldError
from .fields import default_registry, type_name

logger = logging.getLogger(__name__)


class PropertyPath:
    """Compiled extractor for one dotted path."""

    __slots__ = ("root_type", "path", "steps")

    def __init__(self, root_type, path: str, steps):
        self.root_type = root_type
        self.path = path
        self.steps = tuple(steps)  # (owner_type, FieldSpec) pairs

    def __call__(self, record):
        value = record
        for owner, spec in self.steps:
            if value is None:
                return None
            try:
                value = spec.getter(value)
            except (AttributeError, PermissionError) as exc:
                raise FieldAccessError(type_name(owner), spec.name) from exc
        return value

    @property
    def leaf_type(self):
        """Declared type of the last field on the path."""
        return self.steps[-1][1].type

    def __repr__(self):
        return f"PropertyPath({type_name(self.root_type)}, {self.path!r})"


def resolve_path(root_type, dotted_path: str, registry=None) -> PropertyPath:
    """Compile *dotted_path* against *root_type*.

    Raises :class:`UnknownFieldError` if a segment is not a declared field of
    the type reached so far.
    """
    registry = registry or default_registry
    steps = []
    current = root_type
    for segment in dotted_path.split("."):
        spec = registry.field(current, segment) if segment else None
        if spec is None:
            raise UnknownFieldError(type_name(current), segment)
        steps.append((current, spec))
        current = spec.type

    logger.debug(f"Resolved {type_name(root_type)}.{dotted_path} "
                 f"({len(steps)} steps)")
    return PropertyPath(root_type, dotted_path, steps)
