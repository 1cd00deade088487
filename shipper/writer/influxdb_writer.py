"""
InfluxDB writer for the event shipper.
Turns buffered chunks of events into points and writes them to InfluxDB 3.x.
"""

import logging
from typing import List, Optional

from .base import Writer
from .store import InfluxStore
from ..core.config import ShipperConfig
from ..core.errors import AuthorizationError, ConfigError, StoreError
from ..core.metrics import ShipperMetrics
from ..read.chunk_reader import ChunkData, ChunkReader
from ..transform.points import Point, PointBuilder

LOG = logging.getLogger(__name__)


class InfluxDBWriter(Writer):
    """
    Writer implementation for InfluxDB.

    Handles:
    - Startup check that the target database exists
    - Conversion of each chunk into one batch of points
    - One write per non-empty chunk, none for empty ones
    """

    def __init__(self, config: ShipperConfig, store: InfluxStore,
                 metrics: Optional[ShipperMetrics] = None):
        """Initialize InfluxDB writer with configuration and an unconnected store."""
        self.config = config
        self.store = store
        self.metrics = metrics or ShipperMetrics()
        self.builder = PointBuilder(time_key=config.time_key, metrics=self.metrics)
        self.started = False

    def start(self) -> None:
        """
        Connect and confirm the target database exists.

        Raises:
            ConfigError: the database is missing
            StoreError: InfluxDB could not be queried
        """
        LOG.info(f"Connecting to database: {self.config.dbname}, host: {self.config.host}, "
                 f"port: {self.config.port}, username: {self.config.user}, "
                 f"use_ssl = {self.config.use_ssl}, verify_ssl = {self.config.verify_ssl}")

        self.store.connect()
        self._check_database()
        self.started = True

    def _check_database(self) -> None:
        try:
            existing_databases = self.store.list_databases()
        except AuthorizationError as e:
            LOG.info(f"Skip database presence check because '{self.config.user}' user doesn't have "
                     f"admin privilege ({e}). Check '{self.config.dbname}' exists on InfluxDB")
            return

        if self.config.dbname not in existing_databases:
            raise ConfigError(f"Database {self.config.dbname} doesn't exist. Create it first, please. "
                              f"Existing databases: {','.join(existing_databases)}")

        LOG.info(f"Database '{self.config.dbname}' exists")

    def build_points(self, chunk: ChunkData) -> List[Point]:
        """Decode a chunk and build the points of all its events."""
        points: List[Point] = []
        for tag, time, record in ChunkReader.iter_events(chunk):
            self.metrics.records.inc()
            points.extend(self.builder.build(tag, time, record))
        return points

    def write(self, chunk: ChunkData) -> int:
        """
        Write one chunk as a single batch.

        Returns:
            Number of points written (0 when nothing was sent)

        Raises:
            StoreError: not started, or the write failed
        """
        if not self.started:
            raise StoreError("InfluxDB writer used before start()")

        points = self.build_points(chunk)
        if not points:
            LOG.debug("No points in chunk, skipping write")
            return 0

        if LOG.isEnabledFor(logging.DEBUG):
            for point in points:
                LOG.debug(f"Point: {point.to_line_protocol()}")

        try:
            self.store.write_points(points)
        except StoreError:
            self.metrics.write_failures.inc()
            raise

        self.metrics.writes.inc()
        self.metrics.points.inc(len(points))
        LOG.info(f"Wrote {len(points)} points to {self.config.dbname}")
        return len(points)

    def close(self) -> None:
        """Close the store connection."""
        LOG.info("Closing InfluxDB connection")
        self.store.close()
        self.started = False

    def __str__(self) -> str:
        return f"InfluxDBWriter({self.config.url}/{self.config.dbname})"
