"""
Series naming strategies selected by a record's ``schema`` field.

- no ``schema`` field: the series is the field name without its type marker
- ``schema: woodpecker.v1``: the series is ``module.submodule.action.<name>``
- any other schema: the record is rejected
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

SCHEMA_FIELD = 'schema'


class SchemaDialect(Enum):
    """Schema dialects this shipper knows how to name."""
    WOODPECKER_V1 = "woodpecker.v1"


def _segment(value: Any) -> str:
    # Missing segments become empty strings
    return '' if value is None else str(value)


@dataclass(frozen=True)
class BareNaming:
    """Series name is the de-suffixed field name."""

    def series_name(self, field_name: str) -> str:
        return field_name


@dataclass(frozen=True)
class WoodpeckerNaming:
    """Series name is composed from the record's module, submodule and action."""
    module: str
    submodule: str
    action: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'WoodpeckerNaming':
        return cls(
            module=_segment(record.get('module')),
            submodule=_segment(record.get('submodule')),
            action=_segment(record.get('action')),
        )

    def series_name(self, field_name: str) -> str:
        return '.'.join((self.module, self.submodule, self.action, field_name))


@dataclass(frozen=True)
class RejectedSchema:
    """The record names a schema this shipper does not understand."""
    name: str


NamingStrategy = Union[BareNaming, WoodpeckerNaming, RejectedSchema]

DIALECT_STRATEGIES = {
    SchemaDialect.WOODPECKER_V1: WoodpeckerNaming.from_record,
}


def resolve_naming(record: Dict[str, Any]) -> NamingStrategy:
    """Pick the naming strategy for a record."""
    if SCHEMA_FIELD not in record:
        return BareNaming()

    schema = record[SCHEMA_FIELD]
    try:
        dialect = SchemaDialect(schema)
    except ValueError:
        return RejectedSchema(name=str(schema))

    return DIALECT_STRATEGIES[dialect](record)
