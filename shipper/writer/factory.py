"""
Writer factory for the event shipper.
"""

import logging
from typing import Optional

from .base import Writer
from .influxdb_writer import InfluxDBWriter
from .store import InfluxStore
from ..core.config import ShipperConfig
from ..core.metrics import ShipperMetrics

# Initialize logger
LOG = logging.getLogger(__name__)


class WriterFactory:
    """
    Factory for creating writer instances based on configuration.
    """

    @staticmethod
    def create_writer_from_config(config: ShipperConfig,
                                  metrics: Optional[ShipperMetrics] = None) -> Writer:
        """
        Create an InfluxDB writer and its store from a ShipperConfig.

        The store is not connected yet; that happens in Writer.start().

        Args:
            config: ShipperConfig instance
            metrics: Optional metrics holder shared with the caller

        Returns:
            InfluxDBWriter instance
        """
        LOG.info(f"Creating InfluxDB writer with URL: {config.url}, database: {config.dbname}")
        store = InfluxStore(config)
        return InfluxDBWriter(config, store, metrics=metrics)
