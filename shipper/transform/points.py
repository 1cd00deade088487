"""
Turns decoded events into InfluxDB points.

One event ``(tag, time, record)`` produces one point per field whose name
carries a numeric type marker, e.g. ``{"cpu<float>": "0.5"}`` becomes a
point on series ``cpu`` with value ``0.5``. Records that are empty, hold a
null value, or name an unknown schema produce no points at all.
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from influxdb_client_3 import Point as InfluxPoint

from .schema import RejectedSchema, resolve_naming
from .suffix import parse_typed_field
from .tags import extract_tags

LOG = logging.getLogger(__name__)

VALUE_FIELD = 'value'


@dataclass(frozen=True)
class Point:
    """One time-series sample bound for InfluxDB."""
    timestamp: int
    series: str
    values: Mapping[str, float]
    tags: Mapping[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'series': self.series,
            'values': dict(self.values),
            'tags': dict(self.tags),
        }

    def to_influx_point(self, write_precision: str, multiplier: int = 1) -> InfluxPoint:
        """
        Convert to an influxdb_client_3 Point.

        Args:
            write_precision: WritePrecision understood by the client
            multiplier: Factor applied to the timestamp to reach write_precision
        """
        point = InfluxPoint(self.series)
        for tag_key, tag_value in self.tags.items():
            point = point.tag(tag_key, tag_value)
        for field_key, field_value in self.values.items():
            point = point.field(field_key, field_value)
        return point.time(self.timestamp * multiplier, write_precision)

    def to_line_protocol(self) -> str:
        """
        Render as an InfluxDB line protocol string for debug logging.

        Format: series,tag1=value1 value=1.0 timestamp
        """
        def escape(text: str) -> str:
            return str(text).replace(',', r'\,').replace(' ', r'\ ').replace('=', r'\=')

        head = str(self.series).replace(',', r'\,').replace(' ', r'\ ')
        tag_parts = [f"{escape(k)}={escape(v)}" for k, v in sorted(self.tags.items())]
        if tag_parts:
            head += ',' + ','.join(tag_parts)

        field_parts = [f"{escape(k)}={float(v)!r}" for k, v in sorted(self.values.items())]
        return f"{head} {','.join(field_parts)} {self.timestamp}"


def is_invalid_record(record: Optional[Dict[str, Any]]) -> bool:
    """Empty records and records holding any null value carry no usable data."""
    return not record or any(value is None for value in record.values())


def coerce_timestamp(value: Any) -> int:
    """Coerce an event or record timestamp to an integer."""
    if isinstance(value, bool):
        raise TypeError(f"boolean is not a timestamp: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return int(float(text))
    return int(value)


def coerce_value(value: Any) -> float:
    """Coerce a typed field's value to a finite float."""
    if isinstance(value, bool):
        raise TypeError(f"boolean is not numeric: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite value: {value!r}")
    return number


class PointBuilder:
    """
    Builds points from decoded events.

    Holds only configuration; every call to build() works on a copy of the
    record, so equal input always produces equal output.
    """

    def __init__(self, time_key: str = 'time', metrics=None):
        self.time_key = time_key
        self.metrics = metrics

    def _dropped(self, reason: str) -> None:
        if self.metrics is not None:
            self.metrics.record_dropped(reason)

    def build(self, tag: str, time: Any, record: Optional[Dict[str, Any]]) -> List[Point]:
        """
        Build the points for one event.

        Args:
            tag: Event tag (used for diagnostics only)
            time: Event timestamp, used unless the record carries time_key
            record: Record fields

        Returns:
            List of points, empty when the record is rejected
        """
        if is_invalid_record(record):
            LOG.debug(f"Dropping empty or null-valued record from {tag}")
            self._dropped('invalid')
            return []

        fields = dict(record)
        raw_timestamp = fields.pop(self.time_key) if self.time_key in fields else time
        try:
            timestamp = coerce_timestamp(raw_timestamp)
        except (TypeError, ValueError, OverflowError):
            LOG.warning(f"Dropping record from {tag}: unusable timestamp {raw_timestamp!r}")
            self._dropped('timestamp')
            return []

        tags = extract_tags(fields)

        naming = resolve_naming(fields)
        if isinstance(naming, RejectedSchema):
            LOG.warning(f"Unrecognized schema '{naming.name}' in record from {tag}. Dropping record.")
            self._dropped('schema')
            return []

        points = []
        skipped = []
        for key, value in fields.items():
            typed = parse_typed_field(key)
            if typed is None:
                continue

            try:
                number = coerce_value(value)
            except (TypeError, ValueError, OverflowError):
                skipped.append(key)
                continue

            points.append(Point(
                timestamp=timestamp,
                series=naming.series_name(typed.name),
                values=MappingProxyType({VALUE_FIELD: number}),
                tags=tags,
            ))

        if skipped:
            LOG.warning(f"Skipped non-numeric fields in record from {tag}: {', '.join(skipped)}")

        return points
