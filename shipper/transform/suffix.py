"""
Type suffixes embedded in record field names.

A field such as ``latency<float>`` carries a number; the bracketed marker
is metadata and is stripped from the series name.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NumericFamily(Enum):
    """Marker families. Both are stored as floats."""
    INTEGER = "integer"
    FLOAT = "float"


TYPE_SUFFIXES = {
    '<int>': NumericFamily.INTEGER,
    '<long>': NumericFamily.INTEGER,
    '<float>': NumericFamily.FLOAT,
    '<double>': NumericFamily.FLOAT,
}


@dataclass(frozen=True)
class TypedField:
    """A field name with its type marker removed."""
    name: str
    family: NumericFamily


def parse_typed_field(key: str) -> Optional[TypedField]:
    """
    Match a field name against the type suffix table.

    Args:
        key: Raw field name from the record

    Returns:
        TypedField with the marker stripped, or None when the name does not
        end with a known marker (or nothing is left once it is stripped)
    """
    if not isinstance(key, str) or not key.endswith('>'):
        return None

    for suffix, family in TYPE_SUFFIXES.items():
        if key.endswith(suffix):
            name = key[:-len(suffix)]
            if not name:
                return None
            return TypedField(name=name, family=family)

    return None
