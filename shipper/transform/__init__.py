"""Event-to-point transformation."""

from .points import Point, PointBuilder
from .schema import BareNaming, WoodpeckerNaming, RejectedSchema, SchemaDialect, resolve_naming
from .suffix import NumericFamily, TypedField, parse_typed_field
from .tags import extract_tags

__all__ = [
    'Point',
    'PointBuilder',
    'BareNaming',
    'WoodpeckerNaming',
    'RejectedSchema',
    'SchemaDialect',
    'resolve_naming',
    'NumericFamily',
    'TypedField',
    'parse_typed_field',
    'extract_tags',
]
