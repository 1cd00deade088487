"""Writer module for the event shipper.

Provides the InfluxDB writer and its store client.
"""

from .base import Writer
from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter
from .store import InfluxStore

__all__ = ['Writer', 'WriterFactory', 'InfluxDBWriter', 'InfluxStore']
