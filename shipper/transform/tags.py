"""Placement tags copied from a record onto every point it produces."""

from types import MappingProxyType
from typing import Any, Dict, Mapping

SERVICE_FIELD = 'service'
PLACEMENT_PREFIX = 'placement.'
PLACEMENT_TAGS = ('cloud', 'hostname', 'instanceid', 'podname', 'region', 'zone')


def extract_tags(record: Dict[str, Any]) -> Mapping[str, str]:
    """
    Build the tag set for a record.

    Only ``service`` and the ``placement.<name>`` fields listed in
    PLACEMENT_TAGS become tags; the prefix is dropped from the tag key.
    The result is read-only so it can be shared by all points of the record.
    """
    tags = {}

    if SERVICE_FIELD in record:
        tags[SERVICE_FIELD] = str(record[SERVICE_FIELD])

    for name in PLACEMENT_TAGS:
        key = PLACEMENT_PREFIX + name
        if key in record:
            tags[name] = str(record[key])

    return MappingProxyType(tags)
